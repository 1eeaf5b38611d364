"""Domain layer: habit snapshots, lifecycle events, hook results.

This layer depends only on stdlib and pydantic.
It must never import from extensions, services, infrastructure, commands, or config.
"""
