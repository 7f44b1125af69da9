"""Fixed-size chunker for simple character-window splitting.

Splits document text into windows of at most `size` characters, breaking
at paragraph, sentence or word boundaries where possible and carrying
`overlap` characters of context into the next window.
"""

import logging
from typing import List

from domain_models import Chunk

logger = logging.getLogger(__name__)


class FixedChunker:
    """Fixed-size character chunker.

    Best for:
    - Plain notes without structure worth preserving
    - Keeping every request under the provider's input limit
    """

    def __init__(self, size: int = 1000, overlap: int = 200):
        """Initialize fixed chunker.

        Args:
            size: Maximum characters per chunk
            overlap: Characters repeated at the start of the next chunk
        """
        if size <= 0:
            raise ValueError(f"Chunk size must be positive, got {size}")
        if overlap < 0 or overlap >= size:
            raise ValueError(f"Chunk overlap must be in [0, {size}), got {overlap}")
        self.size = size
        self.overlap = overlap

    @property
    def name(self) -> str:
        return "fixed"

    def chunkify(self, source: str) -> List[Chunk]:
        """Chunk text into ordered windows.

        Returns:
            Chunks with consecutive indices starting at 0; empty for blank text
        """
        if not source or not source.strip():
            return []

        text = source
        chunks: List[Chunk] = []
        start = self._skip_whitespace(text, 0)

        while start < len(text):
            end = start + self.size

            # Last window takes everything that remains
            if end >= len(text):
                self._append(chunks, text, start, len(text))
                break

            break_point = self._find_break_point(text, start, end)
            self._append(chunks, text, start, break_point)

            # Step back for overlap, but always make progress
            next_start = max(break_point - self.overlap, start + 1)
            start = self._skip_whitespace(text, next_start)

        return chunks

    def _append(self, chunks: List[Chunk], text: str, start: int, end: int):
        content = text[start:end].strip()
        if content:
            chunks.append(Chunk(index=len(chunks), content=content, start_char=start))

    def _skip_whitespace(self, text: str, pos: int) -> int:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos

    def _find_break_point(self, text: str, start: int, target: int) -> int:
        """Find a good break point at or before target.

        Prefers breaking at:
        1. Paragraph breaks (double newline)
        2. Sentence endings
        3. Word boundaries (spaces)
        """
        # Only look back over the last fifth of the window
        window_start = max(start + 1, target - self.size // 5)

        para_break = text.rfind('\n\n', window_start, target)
        if para_break != -1:
            return para_break + 2

        for punct in ('. ', '! ', '? ', '.\n'):
            sent_break = text.rfind(punct, window_start, target)
            if sent_break != -1:
                return sent_break + 2

        space = text.rfind(' ', window_start, target)
        if space != -1:
            return space + 1

        # Last resort: hard break at target
        return target
