"""Business logic services.

This package contains service classes that talk to upstream providers on
behalf of the API endpoints.
"""
