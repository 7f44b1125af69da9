"""Chunker implementations for the pipeline.

Available chunkers:
- FixedChunker: Fixed-size character windows with overlap
"""

from pipeline.chunkers.fixed_chunker import FixedChunker

__all__ = ['FixedChunker']
