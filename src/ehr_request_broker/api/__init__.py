"""REST API layer of the EHR request broker."""
