"""Infrastructure layer: SQLite persistence for habits and integrations.

This layer depends on stdlib and third-party libs (SQLAlchemy).
It must never import from domain, extensions, services, commands, or output.
The service layer bridges between domain models and infrastructure.
"""
