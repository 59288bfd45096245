"""Domain layer — enums, scoping rules, and graph search.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
