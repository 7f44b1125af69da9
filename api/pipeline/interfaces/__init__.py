"""Pipeline interfaces.

- EmbedderInterface: Text embedding generation

Depend on abstractions, not concretions.
"""

from pipeline.interfaces.embedder import EmbedderInterface

__all__ = ['EmbedderInterface']
