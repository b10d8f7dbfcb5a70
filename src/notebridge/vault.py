"""Filesystem access to the note collection.

A :class:`Vault` is a directory tree of notes and attachments.  Every path
it hands out is relative to the vault root and uses forward slashes, so
lookups behave the same on every platform.  Paths that would escape the
root (``../`` segments, symlinks pointing outside) are treated as missing.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

from notebridge.images.detect import is_image_path
from notebridge.models import NoteDocument


class Vault:
    """A note collection rooted at a local directory.

    Parameters
    ----------
    root:
        The collection root.  Resolved to an absolute path.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).expanduser().resolve()

    def __repr__(self) -> str:
        return f"Vault(root={str(self.root)!r})"

    # -- path helpers ------------------------------------------------------

    def _absolute(self, rel_path: str) -> Path | None:
        rel = rel_path.replace("\\", "/").lstrip("/")
        if not rel:
            return None
        candidate = (self.root / rel).resolve()
        if not candidate.is_relative_to(self.root):
            return None
        return candidate

    def relative(self, path: str | os.PathLike[str]) -> str:
        """Return *path* as a vault-relative POSIX string."""
        absolute = Path(path)
        if not absolute.is_absolute():
            absolute = self.root / absolute
        return absolute.resolve().relative_to(self.root).as_posix()

    # -- lookups -----------------------------------------------------------

    def get_file(self, rel_path: str) -> str | None:
        """Return the normalised relative path if a file exists there."""
        candidate = self._absolute(rel_path)
        if candidate is None or not candidate.is_file():
            return None
        return candidate.relative_to(self.root).as_posix()

    def is_folder(self, rel_path: str) -> bool:
        candidate = self._absolute(rel_path)
        return candidate is not None and candidate.is_dir()

    def list_image_files(self) -> list[str]:
        """List every image file in the vault, skipping hidden folders.

        The order is sorted by relative path so that results are
        reproducible across runs.
        """
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            base = PurePosixPath(Path(dirpath).relative_to(self.root).as_posix())
            for name in sorted(filenames):
                if is_image_path(name):
                    rel = (base / name).as_posix()
                    found.append(rel[2:] if rel.startswith("./") else rel)
        return found

    # -- reads -------------------------------------------------------------

    def read_bytes(self, rel_path: str) -> bytes:
        candidate = self._absolute(rel_path)
        if candidate is None:
            raise FileNotFoundError(rel_path)
        return candidate.read_bytes()

    def read_text(self, rel_path: str) -> str:
        return self.read_bytes(rel_path).decode("utf-8")

    def load_document(self, path: str | os.PathLike[str]) -> NoteDocument:
        """Read a note into a :class:`NoteDocument`.

        *path* may be absolute (inside the vault) or vault-relative.
        """
        rel = self.relative(path)
        return NoteDocument(path=rel, text=self.read_text(rel))
