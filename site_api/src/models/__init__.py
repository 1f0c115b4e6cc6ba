"""Data models for the FastAPI service.

This package contains Pydantic models for request validation and the
records kept by the in-memory store.
"""
