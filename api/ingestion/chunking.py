"""
Sequence chunking.

Splits a sequence into consecutive fixed-size groups. Used for batching
chunk texts into embedding requests; text windowing lives in
pipeline.chunkers.fixed_chunker.
"""
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Partition items into consecutive groups of at most size elements.

    Order is preserved and only the last group may be shorter, so the
    result has ceil(len(items) / size) groups.

        >>> chunk([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]

    Raises:
        ValueError: size is not a positive integer
    """
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ValueError(f"Chunk size must be a positive integer, got {size!r}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
