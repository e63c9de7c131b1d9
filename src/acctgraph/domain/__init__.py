"""Domain layer: types, errors, models, and pure graph algorithms.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
