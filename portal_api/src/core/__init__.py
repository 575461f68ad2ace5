"""
Core application utilities: settings, logging, token handling and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Structured logging with request context
- Dependency helpers (tenant extraction, tenant-scoped DB session, caller context)
"""
