"""Publish and unpublish orchestration.

:class:`PublishPipeline` drives one note through::

    SCANNING -> RESOLVING -> UPLOADING -> PERSISTING -> REVALIDATING -> DONE

1. Normalise wiki embeds in the body and collect image references, plus
   the frontmatter ``cover`` / ``coverSquare`` images.
2. Resolve each local reference to a vault file and read its bytes, one at
   a time.  Unresolved references are logged and skipped.
3. Upload: one multipart request with the content, slug and all images
   (``"batch"``), or one request per image (``"per_image"``).
4. Persist the post record when a store is configured.
5. Notify the revalidation endpoint when one is configured.

Unpublish deletes the store record and notifies the unpublish endpoint.

Every public operation returns an :class:`OperationResult`; notebridge
errors never propagate past it.  Nothing is rolled back: images already
uploaded stay uploaded when persistence fails, and a stored post stays
stored when revalidation fails.
"""

from __future__ import annotations

import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from notebridge.api import HttpTransport, PublishAPI, Transport
from notebridge.config import NotebridgeConfig
from notebridge.errors import (
    NotebridgeError,
    NotebridgeImageNotFoundError,
    NotebridgeRevalidationError,
)
from notebridge.frontmatter import build_post, parse_frontmatter, resolve_slug
from notebridge.images import ImageResolver, iter_references, normalize_embeds
from notebridge.models import (
    ImageReference,
    NoteDocument,
    OperationResult,
    Post,
    PublishState,
    ResolvedAsset,
)
from notebridge.observability import NoopMetricsHook, get_logger
from notebridge.state import PublishStateMachine
from notebridge.store import PostStore, SqlPostStore
from notebridge.vault import Vault

log = get_logger("notebridge.pipeline")

_COVER_KEYS = (("cover",), ("coverSquare", "cover_square"))


def _cover_paths(frontmatter: dict[str, Any]) -> list[str]:
    """Cover image paths declared in the frontmatter, cleaned like references."""
    found: list[str] = []
    for keys in _COVER_KEYS:
        for key in keys:
            value = frontmatter.get(key)
            if isinstance(value, str) and value.strip():
                path = value.strip().split("#", 1)[0].split("?", 1)[0].strip()
                if path and path not in found:
                    found.append(path)
                break
    return found


def _embed_target(raw_path: str) -> str:
    """The link target :func:`normalize_embeds` writes for a wiki embed."""
    return "/" + re.sub(r"\s+", "-", raw_path.strip()).lstrip("/")


def _rewrite_targets(content: str, urls: dict[str, str]) -> str:
    """Point image links at their hosted URLs.

    A target is replaced only where it appears as a whole link or attribute
    value, so ``a.png`` does not rewrite ``data.png``.
    """
    for raw_path, hosted in urls.items():
        for target in {raw_path, _embed_target(raw_path)}:
            pattern = re.compile(
                r"(?<=[(\"'{])" + re.escape(target) + r"(?=[)\"'}#?\s])"
            )
            content = pattern.sub(lambda _m, url=hosted: url, content)
    return content


class PublishPipeline:
    """Publish and unpublish notes from one vault.

    Parameters
    ----------
    config:
        Endpoints, token and request variants.
    vault:
        The note collection images are resolved against.
    transport:
        HTTP primitive.  An :class:`HttpTransport` is created (and closed
        by :meth:`close`) when omitted.
    store:
        Post store.  ``None`` skips persistence.
    owns_store:
        Close *store* in :meth:`close`.
    """

    def __init__(
        self,
        config: NotebridgeConfig,
        vault: Vault,
        *,
        transport: Transport | None = None,
        store: PostStore | None = None,
        owns_store: bool = False,
    ) -> None:
        self._config = config
        self._vault = vault
        self._owns_transport = transport is None
        self._transport: Transport = transport if transport is not None else HttpTransport(config)
        self._api = PublishAPI(self._transport, config)
        self._store = store
        self._owns_store = owns_store
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, document: NoteDocument) -> OperationResult:
        """Upload a note and its images, persist it, and revalidate.

        Returns
        -------
        OperationResult
            ``success`` is ``False`` when parsing, an upload, the store, or
            revalidation failed; ``message`` says which.
        """
        machine = PublishStateMachine(document.basename)
        try:
            frontmatter, body = parse_frontmatter(document.text, source=document.path)
        except NotebridgeError as exc:
            return self._failed("publish", machine, exc, document.basename)

        slug = resolve_slug(frontmatter, document.basename)
        machine.slug = slug
        assets: list[ResolvedAsset] = []
        skipped: list[str] = []

        try:
            # Scanning
            content = normalize_embeds(body)
            covers = _cover_paths(frontmatter)
            references = list(iter_references(body))
            seen = {ref.raw_path for ref in references}
            references.extend(
                ImageReference.from_raw(path) for path in covers if path not in seen
            )

            machine.transition(PublishState.RESOLVING)
            assets, skipped, sources = self._resolve_all(references, set(covers), document)

            machine.transition(PublishState.UPLOADING)
            post = build_post(
                slug,
                frontmatter,
                content,
                last_modified=datetime.now(timezone.utc).isoformat(),
            )
            post = self._upload(document, post, assets, sources)

            machine.transition(PublishState.PERSISTING)
            if self._store is not None:
                self._store.upsert(post)

            machine.transition(PublishState.REVALIDATING)
            if self._config.revalidate_url:
                self._notify(self._config.revalidate_url, post, document)

            machine.transition(PublishState.DONE)
        except NotebridgeRevalidationError as exc:
            return self._failed(
                "publish", machine, exc, slug,
                message=f"Published, but revalidation failed: {exc.message}",
                images_uploaded=len(assets),
                skipped=skipped,
            )
        except (NotebridgeError, OSError) as exc:
            return self._failed("publish", machine, exc, slug, skipped=skipped)

        self._metrics.increment("notebridge.publish_total", tags={"outcome": "success"})
        log.info(
            "Publish complete",
            extra={
                "extra_fields": {
                    "op": "publish",
                    "slug": slug,
                    "images": len(assets),
                    "skipped": len(skipped),
                    "mode": self._config.upload_mode,
                }
            },
        )
        message = "Note uploaded successfully!"
        if skipped:
            message += f" ({len(skipped)} image(s) not found: {', '.join(skipped)})"
        return OperationResult(
            success=True,
            message=message,
            slug=slug,
            state=machine.state,
            images_uploaded=len(assets),
            skipped=skipped,
        )

    def _resolve_all(
        self,
        references: list[ImageReference],
        covers: set[str],
        document: NoteDocument,
    ) -> tuple[list[ResolvedAsset], list[str], dict[str, str]]:
        """Load each local reference once per file.

        Also returns the source file every resolved ``raw_path`` maps to,
        including references dropped as duplicates of an earlier one.
        """
        resolver = ImageResolver(self._vault)
        assets: list[ResolvedAsset] = []
        skipped: list[str] = []
        sources: dict[str, str] = {}
        loaded: set[str] = set()

        for ref in references:
            if ref.is_remote:
                continue
            try:
                asset = resolver.load(
                    ref.raw_path, document, is_cover=ref.raw_path in covers,
                )
            except NotebridgeImageNotFoundError as exc:
                skipped.append(ref.raw_path)
                self._metrics.increment("notebridge.images_missing_total")
                log.warning(
                    "Image reference skipped",
                    extra={
                        "extra_fields": {
                            "op": "resolve",
                            "document": document.path,
                            "raw_path": ref.raw_path,
                            "error": exc.message,
                        }
                    },
                )
                continue
            sources[ref.raw_path] = asset.source_path
            if asset.source_path in loaded:
                continue
            loaded.add(asset.source_path)
            assets.append(asset)
            self._metrics.increment("notebridge.images_resolved_total")

        return assets, skipped, sources

    def _upload(
        self,
        document: NoteDocument,
        post: Post,
        assets: list[ResolvedAsset],
        sources: dict[str, str],
    ) -> Post:
        if self._config.upload_mode == "batch":
            self._api.upload_batch(normalize_embeds(document.text), post.slug, assets)
            return post

        hosted = {asset.source_path: self._api.upload_image(asset) for asset in assets}
        urls = {raw_path: hosted[source] for raw_path, source in sources.items()}
        if urls:
            post.content = _rewrite_targets(post.content, urls)
            if post.cover in urls:
                post.cover = urls[post.cover]
            if post.cover_square in urls:
                post.cover_square = urls[post.cover_square]
        return post

    def _notify(self, url: str, post: Post, document: NoteDocument) -> None:
        self._api.revalidate(
            url,
            post.slug,
            document.text,
            shortened=post.shortened,
            tags=sorted(post.tags),
        )

    # ------------------------------------------------------------------
    # Unpublish
    # ------------------------------------------------------------------

    def unpublish(self, document: NoteDocument) -> OperationResult:
        """Delete a note's post record and notify the unpublish endpoint.

        No image handling takes place.
        """
        machine = PublishStateMachine(document.basename, initial=PublishState.PERSISTING)
        try:
            frontmatter, body = parse_frontmatter(document.text, source=document.path)
        except NotebridgeError as exc:
            return self._failed("unpublish", machine, exc, document.basename)

        slug = resolve_slug(frontmatter, document.basename)
        machine.slug = slug
        try:
            if self._store is not None:
                self._store.delete(slug)

            machine.transition(PublishState.REVALIDATING)
            post = build_post(slug, frontmatter, normalize_embeds(body))
            self._notify(self._config.unpublish_url, post, document)

            machine.transition(PublishState.DONE)
        except NotebridgeError as exc:
            return self._failed("unpublish", machine, exc, slug)

        self._metrics.increment("notebridge.unpublish_total", tags={"outcome": "success"})
        log.info("Unpublish complete", extra={"extra_fields": {"op": "unpublish", "slug": slug}})
        return OperationResult(
            success=True,
            message="Note unpublished successfully!",
            slug=slug,
            state=machine.state,
        )

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def publish_path(self, path: str | os.PathLike[str]) -> OperationResult:
        """Load the note at *path* from the vault and publish it."""
        try:
            document = self._vault.load_document(path)
        except (OSError, ValueError, UnicodeDecodeError) as exc:
            return OperationResult(success=False, message=f"Error: cannot read note: {exc}")
        return self.publish(document)

    def unpublish_path(self, path: str | os.PathLike[str]) -> OperationResult:
        """Load the note at *path* from the vault and unpublish it."""
        try:
            document = self._vault.load_document(path)
        except (OSError, ValueError, UnicodeDecodeError) as exc:
            return OperationResult(success=False, message=f"Error: cannot read note: {exc}")
        return self.unpublish(document)

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    def _failed(
        self,
        op: str,
        machine: PublishStateMachine,
        exc: Exception,
        slug: str,
        *,
        message: str | None = None,
        images_uploaded: int = 0,
        skipped: list[str] | None = None,
    ) -> OperationResult:
        reason = exc.message if isinstance(exc, NotebridgeError) else str(exc)
        failed_in = machine.state
        if not machine.is_terminal:
            machine.fail(reason)
        self._metrics.increment(f"notebridge.{op}_total", tags={"outcome": "failure"})
        log.error(
            f"{op.capitalize()} failed",
            extra={
                "extra_fields": {
                    "op": op,
                    "slug": slug,
                    "state": failed_in.value,
                    "code": getattr(exc, "code", type(exc).__name__),
                    "error": reason,
                }
            },
        )
        return OperationResult(
            success=False,
            message=message or f"Error: {reason}",
            slug=slug,
            state=machine.state,
            images_uploaded=images_uploaded,
            skipped=skipped or [],
        )

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the transport and store if this pipeline owns them."""
        if self._owns_transport and isinstance(self._transport, HttpTransport):
            self._transport.close()
        if self._owns_store and isinstance(self._store, SqlPostStore):
            self._store.close()

    def __enter__(self) -> PublishPipeline:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Free functions
# ---------------------------------------------------------------------------

def build_pipeline(
    config: NotebridgeConfig,
    vault_root: str | os.PathLike[str],
    *,
    transport: Transport | None = None,
) -> PublishPipeline:
    """Create a pipeline, opening a :class:`SqlPostStore` when
    ``config.database_url`` is set.
    """
    store = SqlPostStore.from_url(config.database_url) if config.database_url else None
    return PublishPipeline(
        config, Vault(vault_root), transport=transport, store=store, owns_store=True,
    )


def _default_root(note_path: str | os.PathLike[str]) -> Path:
    return Path(note_path).expanduser().resolve().parent


def _setup_failed(op: str, config: NotebridgeConfig, exc: NotebridgeError) -> OperationResult:
    metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
    metrics.increment(f"notebridge.{op}_total", tags={"outcome": "failure"})
    log.error(
        f"{op.capitalize()} failed",
        extra={"extra_fields": {"op": op, "code": exc.code, "error": exc.message}},
    )
    return OperationResult(success=False, message=f"Error: {exc.message}")


def publish_note(
    note_path: str | os.PathLike[str],
    config: NotebridgeConfig,
    vault_root: str | os.PathLike[str] | None = None,
) -> OperationResult:
    """Publish the note at *note_path*.

    *vault_root* defaults to the folder containing the note.
    """
    root = vault_root if vault_root is not None else _default_root(note_path)
    try:
        pipeline = build_pipeline(config, root)
    except NotebridgeError as exc:
        return _setup_failed("publish", config, exc)
    with pipeline:
        return pipeline.publish_path(Path(note_path).expanduser().resolve())


def unpublish_note(
    note_path: str | os.PathLike[str],
    config: NotebridgeConfig,
    vault_root: str | os.PathLike[str] | None = None,
) -> OperationResult:
    """Unpublish the note at *note_path*.

    *vault_root* defaults to the folder containing the note.
    """
    root = vault_root if vault_root is not None else _default_root(note_path)
    try:
        pipeline = build_pipeline(config, root)
    except NotebridgeError as exc:
        return _setup_failed("unpublish", config, exc)
    with pipeline:
        return pipeline.unpublish_path(Path(note_path).expanduser().resolve())
