"""
Book Catalog API Application Package

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy engine, session factory and declarative base
- errors.py: Client-facing error taxonomy
- main.py: FastAPI application factory and configuration
- dependencies.py: Sessions, authentication and resource-loading dependencies
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (identity, sessions, OAuth, rate limiting)
"""

__version__ = "1.0.0"
