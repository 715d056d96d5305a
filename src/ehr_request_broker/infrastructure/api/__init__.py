"""REST API support: pydantic models and citizen identification."""
