"""HTTP server infrastructure module.

This module provides the FastAPI application factory and HTTP-related utilities:
- Application factory (``app``)
- Route handlers (``routes``)
- FastAPI dependencies (``dependencies``)
- Health checks (``health``)

Nothing is imported here so that route modules can depend on
``dependencies`` without importing the application factory.
"""
