"""Post persistence.

:class:`PostStore` is the contract the pipeline depends on.
:class:`SqlPostStore` implements it with SQLAlchemy Core against the
tables in :mod:`notebridge.store.schema`.

Each statement commits on its own; an upsert is a sequence of statements
(post row, tag delete/insert, keyword delete/insert, view counter seed)
with no transaction spanning them.  A failure part-way leaves the earlier
statements applied.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from sqlalchemy import create_engine, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from notebridge.errors import NotebridgeStoreError
from notebridge.models import Post
from notebridge.observability import get_logger
from notebridge.utils import redact

from .schema import metadata, post_keywords, post_tags, posts, views

log = get_logger("notebridge.store")


class PostStore(Protocol):
    """Persistence contract used by the publish pipeline."""

    def upsert(self, post: Post) -> None:
        ...

    def delete(self, slug: str) -> None:
        ...


def _post_row(post: Post) -> dict[str, Any]:
    return {
        "content": post.content,
        "title": post.title,
        "description": post.description,
        "date": post.date,
        "excerpt": post.excerpt,
        "locale": post.locale,
        "cover": post.cover,
        "coverSquare": post.cover_square,
        "lastModified": post.last_modified,
        "shortened": post.shortened,
        "shortExcerpt": post.short_excerpt,
    }


class SqlPostStore:
    """SQLAlchemy-backed :class:`PostStore`.

    Parameters
    ----------
    engine:
        A configured engine.  Use :meth:`from_url` to build one from a
        connection string.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: Any) -> SqlPostStore:
        """Build a store from a connection string.

        Raises
        ------
        NotebridgeStoreError
            If the URL is malformed or its driver is not installed.
        """
        try:
            engine = create_engine(database_url, **engine_kwargs)
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            reason = redact({"error": str(exc)})["error"]
            log.error(
                "Store connection setup failed",
                extra={"extra_fields": {"op": "connect", "error": reason}},
            )
            raise NotebridgeStoreError(
                message=f"Cannot open store: {reason}",
                context={"operation": "connect"},
                cause=exc,
            ) from exc
        return cls(engine)

    def create_schema(self) -> None:
        """Create any missing tables."""
        metadata.create_all(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    # -- writes ------------------------------------------------------------

    def _execute(
        self,
        statement: Any,
        slug: str,
        operation: str,
        consume: Callable[[Any], Any] | None = None,
    ) -> Any:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(statement)
                return consume(result) if consume is not None else None
        except SQLAlchemyError as exc:
            log.error(
                "Store statement failed",
                extra={
                    "extra_fields": {
                        "op": operation,
                        "slug": slug,
                        "error": str(exc),
                    }
                },
            )
            raise NotebridgeStoreError(
                message=f"Store {operation} failed for {slug!r}: {exc}",
                context={"slug": slug, "operation": operation},
                cause=exc,
            ) from exc

    def upsert(self, post: Post) -> None:
        """Insert or overwrite *post* and replace its tags and keywords.

        Raises
        ------
        NotebridgeStoreError
            If any statement fails.
        """
        slug = post.slug
        row = _post_row(post)

        updated = self._execute(
            update(posts).where(posts.c.slug == slug).values(**row),
            slug, "update_post",
            consume=lambda result: result.rowcount,
        )
        if updated == 0:
            self._execute(insert(posts).values(slug=slug, **row), slug, "insert_post")

        self._execute(delete(post_tags).where(post_tags.c.slug == slug), slug, "delete_tags")
        if post.tags:
            self._execute(
                insert(post_tags).values([{"slug": slug, "tag": t} for t in sorted(post.tags)]),
                slug, "insert_tags",
            )

        self._execute(
            delete(post_keywords).where(post_keywords.c.slug == slug), slug, "delete_keywords",
        )
        if post.keywords:
            self._execute(
                insert(post_keywords).values(
                    [{"slug": slug, "keyword": k} for k in sorted(post.keywords)]
                ),
                slug, "insert_keywords",
            )

        seeded = self._execute(
            select(views.c.slug).where(views.c.slug == slug), slug, "select_views",
            consume=lambda result: result.first(),
        )
        if seeded is None:
            self._execute(insert(views).values(slug=slug, count=0), slug, "seed_views")

        log.info(
            "Post upserted",
            extra={
                "extra_fields": {
                    "op": "upsert",
                    "slug": slug,
                    "tags": len(post.tags),
                    "keywords": len(post.keywords),
                }
            },
        )

    def delete(self, slug: str) -> None:
        """Remove the post row and every row associated with *slug*.

        Raises
        ------
        NotebridgeStoreError
            If any statement fails.
        """
        self._execute(delete(post_tags).where(post_tags.c.slug == slug), slug, "delete_tags")
        self._execute(
            delete(post_keywords).where(post_keywords.c.slug == slug), slug, "delete_keywords",
        )
        self._execute(delete(views).where(views.c.slug == slug), slug, "delete_views")
        self._execute(delete(posts).where(posts.c.slug == slug), slug, "delete_post")
        log.info("Post deleted", extra={"extra_fields": {"op": "delete", "slug": slug}})

    # -- reads -------------------------------------------------------------

    def get(self, slug: str) -> Post | None:
        """Load a post with its tags and keywords, or ``None``."""
        try:
            with self._engine.connect() as conn:
                row = conn.execute(select(posts).where(posts.c.slug == slug)).mappings().first()
                if row is None:
                    return None
                tags = conn.execute(
                    select(post_tags.c.tag).where(post_tags.c.slug == slug)
                ).scalars().all()
                keywords = conn.execute(
                    select(post_keywords.c.keyword).where(post_keywords.c.slug == slug)
                ).scalars().all()
        except SQLAlchemyError as exc:
            raise NotebridgeStoreError(
                message=f"Store read failed for {slug!r}: {exc}",
                context={"slug": slug, "operation": "get"},
                cause=exc,
            ) from exc

        return Post(
            slug=row["slug"],
            title=row["title"],
            content=row["content"],
            description=row["description"],
            date=row["date"],
            excerpt=row["excerpt"],
            locale=row["locale"],
            cover=row["cover"],
            cover_square=row["coverSquare"],
            last_modified=row["lastModified"],
            shortened=row["shortened"],
            short_excerpt=row["shortExcerpt"],
            tags=set(tags),
            keywords=set(keywords),
        )
