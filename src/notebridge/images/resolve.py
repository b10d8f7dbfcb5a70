"""Image resolution: mapping a reference to a file in the vault.

Resolution order, first hit wins:

1. Exact path relative to the vault root.
2. Any image file whose path ends with the reference, or whose file name
   equals the reference's file name.
3. ``attachments/``, ``images/`` and ``assets/`` next to the note.
4. For cover images only: well-known root folders
   (:data:`COVER_FOLDERS`) joined with the reference.

A miss is not fatal; callers decide whether to skip the reference.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import unquote

from notebridge.errors import NotebridgeImageNotFoundError
from notebridge.images.detect import content_type_for
from notebridge.models import NoteDocument, ResolvedAsset
from notebridge.observability import get_logger

if TYPE_CHECKING:
    from notebridge.vault import Vault

log = get_logger("notebridge.resolve")

SIBLING_FOLDERS: tuple[str, ...] = ("attachments", "images", "assets")

COVER_FOLDERS: tuple[str, ...] = (
    "assets", "images", "attachments", "media", "_attachments", "_assets", "_images",
)


class ImageResolver:
    """Locate the local file behind an image reference.

    Parameters
    ----------
    vault:
        The collection to search.  The image listing is read lazily and
        cached for the lifetime of the resolver, which is one publish call.
    """

    def __init__(self, vault: Vault) -> None:
        self._vault = vault
        self._image_files: list[str] | None = None

    def _images(self) -> list[str]:
        if self._image_files is None:
            self._image_files = self._vault.list_image_files()
        return self._image_files

    def resolve(
        self,
        raw_path: str,
        document: NoteDocument,
        *,
        is_cover: bool = False,
    ) -> str | None:
        """Return the vault-relative path of the file *raw_path* points at.

        Parameters
        ----------
        raw_path:
            The reference as found in the note.
        document:
            The note containing the reference; its folder is used for the
            sibling-folder lookup.
        is_cover:
            Enable the extra root-folder lookup used for frontmatter covers.

        Returns
        -------
        str | None
            The matching path, or ``None`` when nothing matched.
        """
        candidates = [raw_path]
        decoded = unquote(raw_path)
        if decoded != raw_path:
            candidates.append(decoded)

        for candidate in candidates:
            found = self._resolve_one(candidate, document, is_cover)
            if found is not None:
                return found
        return None

    def _resolve_one(self, raw_path: str, document: NoteDocument, is_cover: bool) -> str | None:
        rel = raw_path.lstrip("/")
        basename = PurePosixPath(rel).name
        if not basename:
            return None

        # 1. Exact path.
        exact = self._vault.get_file(rel)
        if exact is not None:
            return exact

        # 2. Path suffix or file name.
        for path in self._images():
            if path == rel or path.endswith("/" + rel) or PurePosixPath(path).name == basename:
                return path

        # 3. Conventional folders next to the note.
        for folder in SIBLING_FOLDERS:
            candidate = f"{document.folder}/{folder}/{basename}" if document.folder else f"{folder}/{basename}"
            found = self._vault.get_file(candidate)
            if found is not None:
                return found

        # 4. Root-level media folders, covers only.
        if is_cover:
            for folder in COVER_FOLDERS:
                found = self._vault.get_file(f"{folder}/{rel}")
                if found is not None:
                    return found

        return None

    def load(
        self,
        raw_path: str,
        document: NoteDocument,
        *,
        is_cover: bool = False,
    ) -> ResolvedAsset:
        """Resolve *raw_path* and read its bytes.

        Raises
        ------
        NotebridgeImageNotFoundError
            If no file matches.
        OSError
            If the file exists but cannot be read.
        """
        path = self.resolve(raw_path, document, is_cover=is_cover)
        if path is None:
            raise NotebridgeImageNotFoundError(
                message=f"Image not found: {raw_path}",
                context={"raw_path": raw_path, "document": document.path},
            )

        data = self._vault.read_bytes(path)
        name = PurePosixPath(path).name
        log.debug(
            "Image resolved",
            extra={
                "extra_fields": {
                    "op": "resolve",
                    "raw_path": raw_path,
                    "path": path,
                    "bytes": len(data),
                }
            },
        )
        return ResolvedAsset(
            # Published content links embeds with whitespace replaced by
            # hyphens; the uploaded file name has to match.
            file_name=re.sub(r"\s+", "-", name),
            content_type=content_type_for(name),
            data=data,
            raw_path=raw_path,
            source_path=path,
        )
