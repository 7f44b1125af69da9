"""
Vector extension artifact loading.

The engine itself (SQLite) ships with the interpreter; the one binary we
acquire is the sqlite-vec loadable library. It is read once, byte-exact,
and optionally checked against a pinned SHA-256 before SQLite is allowed
to load it.
"""
import asyncio
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import DatabaseConfig
from errors import ArtifactLoadError

logger = logging.getLogger(__name__)

# sqlite3 accepts library paths without suffix; reading bytes needs the real file
_LIBRARY_SUFFIXES = ("", ".so", ".dylib", ".dll")


@dataclass(frozen=True)
class EngineArtifacts:
    """Resolved vector extension library"""
    extension_path: str
    library_file: Path
    size: int
    sha256: str


class ArtifactLoader:
    """Resolves and verifies the vector extension library.

    Single responsibility: locate the binary and prove it is intact.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config

    async def load(self) -> EngineArtifacts:
        """Resolve, read and verify the extension library.

        File I/O runs in a worker thread so a slow disk does not stall the
        event loop.

        Raises:
            ArtifactLoadError: library missing, unreadable, empty or checksum mismatch
        """
        extension_path = self._extension_path()
        library_file = self._resolve_library_file(extension_path)
        try:
            data = await asyncio.to_thread(library_file.read_bytes)
        except OSError as e:
            raise ArtifactLoadError(f"Cannot read vector extension {library_file}: {e}") from e

        if not data:
            raise ArtifactLoadError(f"Vector extension {library_file} is empty")

        digest = hashlib.sha256(data).hexdigest()
        self._verify_checksum(library_file, digest)
        logger.debug(f"Vector extension resolved: {library_file} ({len(data):,} bytes)")
        return EngineArtifacts(
            extension_path=extension_path,
            library_file=library_file,
            size=len(data),
            sha256=digest,
        )

    def _extension_path(self) -> str:
        """Configured path, else the library bundled with the sqlite_vec wheel"""
        if self.config.vec_extension_path:
            return self.config.vec_extension_path
        try:
            import sqlite_vec
        except ImportError as e:
            raise ArtifactLoadError(
                "sqlite-vec is not installed and VEC_EXTENSION_PATH is not set"
            ) from e
        return sqlite_vec.loadable_path()

    def _resolve_library_file(self, extension_path: str) -> Path:
        for suffix in _LIBRARY_SUFFIXES:
            candidate = Path(extension_path + suffix)
            if candidate.is_file():
                return candidate
        raise ArtifactLoadError(f"Vector extension library not found: {extension_path}")

    def _verify_checksum(self, library_file: Path, digest: str) -> None:
        expected = self.config.vec_extension_sha256
        if expected and digest.lower() != expected.strip().lower():
            raise ArtifactLoadError(
                f"Vector extension {library_file} failed checksum verification "
                f"(expected {expected}, got {digest})"
            )
