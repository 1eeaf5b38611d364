"""Service layer: lifecycle glue and extension queries returning ServiceResult.

Services may import from domain, extensions and infrastructure.
They must never import from commands or output.
"""
