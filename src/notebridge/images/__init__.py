"""Image pipeline: finding references in note text and the files behind them.

Exports
-------
scan / iter_references
    Collect image references across Markdown, wiki, HTML and component syntax.
normalize_embeds
    Rewrite wiki embeds into standard Markdown images.
ImageResolver
    Map a reference to a file in the vault.
content_type_for / is_image_path / is_remote
    Path classification helpers.
"""

from .detect import IMAGE_EXTENSIONS, content_type_for, is_image_path, is_remote
from .resolve import COVER_FOLDERS, SIBLING_FOLDERS, ImageResolver
from .scan import iter_references, normalize_embeds, scan

__all__ = [
    "COVER_FOLDERS",
    "IMAGE_EXTENSIONS",
    "SIBLING_FOLDERS",
    "ImageResolver",
    "content_type_for",
    "is_image_path",
    "is_remote",
    "iter_references",
    "normalize_embeds",
    "scan",
]
