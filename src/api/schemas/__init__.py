"""Pydantic schema models for form input and error responses."""
