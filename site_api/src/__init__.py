"""FastAPI service for the promotional website.

This package provides the REST endpoints behind the site: contact and
newsletter forms, and a rate-limited proxy to generative-AI providers.
"""

__version__ = "1.0.0"
