"""Image reference scanning.

Finds every image a note refers to, across the markup dialects a note may
mix freely:

* standard Markdown images -- ``![alt](target)``
* wiki embeds -- ``![[target]]`` and ``![[target|alt text]]``
* raw HTML tags -- ``<img ... src="target" ...>``
* component tags -- ``<Image ... src="target" ...>`` and
  ``<Image ... src={expression} ...>``

Each dialect is matched independently over the raw text.  Scanning is pure
and never raises; text without references yields an empty set.

:func:`normalize_embeds` is the companion rewrite that turns wiki embeds
into standard Markdown for the content that gets published.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from notebridge.images.detect import is_image_path
from notebridge.models import ImageReference

# ![alt](target) -- the alt text may hold balanced brackets, but never starts
# with "[" so wiki embeds are not read as standard images.
_STANDARD_RE = re.compile(
    r"!\[(?!\[)((?:[^\]\n]|\[[^\[\]\n]*\])*)\]\(([^)\n]*)\)"
)

# ![[target]] / ![[target|alt]]
_WIKI_RE = re.compile(r"!\[\[([^\]\n]*)\]\]")

# <img src="..."> in any attribute position, either quote style.
_HTML_IMG_RE = re.compile(
    r"""<img\b[^>]*?(?<![\w-])src\s*=\s*(["'])(.*?)\1[^>]*>""",
    re.IGNORECASE | re.DOTALL,
)

# <Image src="..."> component with a string attribute.
_COMPONENT_STR_RE = re.compile(
    r"""<Image\b[^>]*?(?<![\w-])src\s*=\s*(["'])(.*?)\1[^>]*>""",
    re.DOTALL,
)

# <Image src={...}> component with an expression attribute.
_COMPONENT_EXPR_RE = re.compile(
    r"""<Image\b[^>]*?(?<![\w-])src\s*=\s*\{([^}]*)\}""",
    re.DOTALL,
)

# Optional Markdown link title after the target: ![a](img.png "Title")
_TITLE_SUFFIX_RE = re.compile(r"""^(.*?)\s+(?:"[^"]*"|'[^']*')$""", re.DOTALL)

# A JS expression that is just a string literal.
_STRING_LITERAL_RE = re.compile(
    r"""^\s*(?:"([^"]*)"|'([^']*)'|`([^`$]*)`)\s*$"""
)

# Bare text that looks like an image file name, e.g. {hero.png}
_BARE_FILENAME_RE = re.compile(r"^[\w@~./-]+$")


def _clean(candidate: str) -> str:
    """Trim and drop the fragment and query string of a candidate path."""
    path = candidate.strip()
    path = path.split("#", 1)[0]
    path = path.split("?", 1)[0]
    return path.strip()


def _standard_target(inner: str) -> str:
    inner = inner.strip()
    if inner.startswith("<") and ">" in inner:
        return inner[1:inner.index(">")]
    match = _TITLE_SUFFIX_RE.match(inner)
    if match:
        return match.group(1)
    return inner


def _expression_target(expression: str) -> str | None:
    """Statically evaluate a ``src={...}`` expression, if possible.

    Only a quoted string literal or a bare image file name can be resolved;
    anything else (variables, imports, calls) returns ``None``.
    """
    literal = _STRING_LITERAL_RE.match(expression)
    if literal:
        return next(g for g in literal.groups() if g is not None)
    bare = expression.strip()
    if _BARE_FILENAME_RE.match(bare) and is_image_path(bare):
        return bare
    return None


def _candidates(text: str) -> Iterator[str]:
    for match in _STANDARD_RE.finditer(text):
        yield _standard_target(match.group(2))

    for match in _WIKI_RE.finditer(text):
        yield match.group(1).split("|", 1)[0]

    for match in _HTML_IMG_RE.finditer(text):
        yield match.group(2)

    for match in _COMPONENT_STR_RE.finditer(text):
        yield match.group(2)

    for match in _COMPONENT_EXPR_RE.finditer(text):
        target = _expression_target(match.group(1))
        if target is not None:
            yield target


def iter_references(text: str) -> Iterator[ImageReference]:
    """Yield the distinct image references in *text* in a stable order.

    References are ordered by dialect (standard, wiki, ``<img>``,
    ``<Image>``) and then by position; a raw path seen before is not
    yielded again.
    """
    seen: set[str] = set()
    for candidate in _candidates(text):
        raw_path = _clean(candidate)
        if not raw_path or raw_path in seen:
            continue
        seen.add(raw_path)
        yield ImageReference.from_raw(raw_path)


def scan(text: str) -> set[ImageReference]:
    """Return the set of image references contained in *text*.

    Parameters
    ----------
    text:
        Raw note text, frontmatter included or not.

    Returns
    -------
    set[ImageReference]
        One entry per distinct raw path.  Empty when *text* has no images.
    """
    return set(iter_references(text))


def _embed_to_markdown(match: re.Match[str]) -> str:
    inner = match.group(1)
    path_part, sep, alt_part = inner.partition("|")
    clean_path = re.sub(r"\s+", "-", path_part.strip())
    if not clean_path:
        return match.group(0)
    if sep:
        # ![[a.png|alt|100]]: later segments are display sizes
        alt_text = alt_part.split("|", 1)[0].strip()
    else:
        alt_text = clean_path.rsplit("/", 1)[-1]
    return f"![{alt_text}](/{clean_path.lstrip('/')})"


def normalize_embeds(text: str) -> str:
    """Rewrite wiki embeds into standard Markdown image syntax.

    ``![[path]]`` becomes ``![name](/path)`` where *name* is the last path
    component, and ``![[path|alt]]`` becomes ``![alt](/path)``.  Whitespace
    inside the path is replaced with hyphens.  Text without embeds is
    returned unchanged.

    >>> normalize_embeds("![[a b.png|My Alt]]")
    '![My Alt](/a-b.png)'
    """
    return _WIKI_RE.sub(_embed_to_markdown, text)
