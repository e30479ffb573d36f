"""Infrastructure layer — database engine, schema, and data access.

This layer depends on stdlib and SQLAlchemy only.
It must never import from services, commands, repl, or output.
"""
