"""Infrastructure layer: database, stores, cache, graph view.

This layer depends on stdlib, the domain layer, and third-party libs
(SQLAlchemy, Alembic, NetworkX). It must never import from services,
commands, or output.
"""
