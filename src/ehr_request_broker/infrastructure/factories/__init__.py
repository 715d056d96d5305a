"""Factories building configured services from a ConfigLoader."""
