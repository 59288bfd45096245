"""Service layer — registry, relationship engine, graph assembly.

Services may import from domain and infrastructure layers.
They must never import from commands or output.
"""
