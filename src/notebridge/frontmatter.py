"""Frontmatter parsing and :class:`~notebridge.models.Post` construction.

A note may start with a YAML block fenced by ``---`` lines::

    ---
    title: Hello
    cover: covers/hello.jpg
    tags: [python, notes]
    ---
    Body text...

Keys follow the post schema's camelCase names (``coverSquare``,
``lastModified``, ``shortExcerpt``); snake_case spellings are accepted too.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any

import yaml

from notebridge.errors import NotebridgeFrontmatterError
from notebridge.models import Post

_FRONTMATTER_RE = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)

SHORT_EXCERPT_LENGTH = 160

DEFAULT_LOCALE = "en"


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """Split *text* into ``(frontmatter_yaml, body)``.

    Returns ``(None, text)`` when the note has no frontmatter block.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end():]


def parse_frontmatter(text: str, *, source: str = "") -> tuple[dict[str, Any], str]:
    """Parse the frontmatter of a note.

    Parameters
    ----------
    text:
        Full note text.
    source:
        Note path, used only in error context.

    Returns
    -------
    tuple[dict, str]
        The frontmatter mapping (empty when absent) and the body.

    Raises
    ------
    NotebridgeFrontmatterError
        If the block is not valid YAML or is not a mapping.
    """
    raw, body = split_frontmatter(text)
    if raw is None:
        return {}, body
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise NotebridgeFrontmatterError(
            message=f"Invalid frontmatter YAML: {exc}",
            context={"document": source, "reason": "yaml_error"},
            cause=exc,
        ) from exc
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise NotebridgeFrontmatterError(
            message="Frontmatter must be a mapping",
            context={"document": source, "reason": type(data).__name__},
        )
    return data, body


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _lookup(frontmatter: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = frontmatter.get(key)
        if value is not None:
            return value
    return None


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def _as_set(value: Any, *, strip_hash: bool = False) -> set[str]:
    if value is None:
        return set()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        items = [value]
    result: set[str] = set()
    for item in items:
        text = str(item).strip()
        if strip_hash:
            text = text.lstrip("#").strip()
        if text:
            result.add(text)
    return result


def first_paragraph(content: str) -> str | None:
    """Return the first prose paragraph of *content*, whitespace-collapsed.

    Headings, images, HTML blocks and fenced code are skipped.
    """
    in_fence = False
    for block in re.split(r"\n\s*\n", content):
        stripped = block.strip()
        if in_fence or stripped.startswith("```"):
            # An odd number of fences opens or closes a code block.
            if stripped.count("```") % 2 == 1:
                in_fence = not in_fence
            continue
        if not stripped:
            continue
        if stripped.startswith(("#", "![", "<", ">", "|", "---")):
            continue
        return " ".join(stripped.split())
    return None


def shorten(text: str, limit: int = SHORT_EXCERPT_LENGTH) -> str:
    """Truncate *text* to at most *limit* characters on a word boundary."""
    if len(text) <= limit:
        return text
    cut = text[: limit - 3]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,.;:") + "..."


def resolve_slug(frontmatter: dict[str, Any], basename: str) -> str:
    """The post slug: frontmatter ``slug`` if present, else the file stem."""
    return _as_text(frontmatter.get("slug")) or basename


def build_post(
    slug: str,
    frontmatter: dict[str, Any],
    content: str,
    *,
    last_modified: str | None = None,
) -> Post:
    """Build the store record for a note.

    Parameters
    ----------
    slug:
        Identity of the post (see :func:`resolve_slug`).
    frontmatter:
        Parsed frontmatter mapping.
    content:
        Published body: frontmatter removed, embeds normalised.
    last_modified:
        Fallback for ``lastModified`` when the frontmatter has none.
    """
    excerpt = _as_text(frontmatter.get("excerpt")) or first_paragraph(content)
    short_excerpt = _as_text(_lookup(frontmatter, "shortExcerpt", "short_excerpt"))
    if short_excerpt is None and excerpt is not None:
        short_excerpt = shorten(excerpt)

    return Post(
        slug=slug,
        title=_as_text(frontmatter.get("title")) or slug,
        content=content,
        description=_as_text(frontmatter.get("description")),
        date=_as_text(frontmatter.get("date")),
        excerpt=excerpt,
        locale=_as_text(frontmatter.get("locale")) or DEFAULT_LOCALE,
        cover=_as_text(frontmatter.get("cover")),
        cover_square=_as_text(_lookup(frontmatter, "coverSquare", "cover_square")),
        last_modified=(
            _as_text(_lookup(frontmatter, "lastModified", "last_modified"))
            or last_modified
        ),
        shortened=_as_text(frontmatter.get("shortened")),
        short_excerpt=short_excerpt,
        tags=_as_set(frontmatter.get("tags"), strip_hash=True),
        keywords=_as_set(frontmatter.get("keywords")),
    )
