"""Pydantic request / response schemas."""
