"""Table definitions for the post store.

The schema belongs to the consuming site; notebridge only writes to it.
Column names match the site's camelCase fields.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

posts = Table(
    "posts",
    metadata,
    Column("slug", String(512), primary_key=True),
    Column("content", Text, nullable=False),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=True),
    Column("date", String(64), nullable=True),
    Column("excerpt", Text, nullable=True),
    Column("locale", String(32), nullable=True),
    Column("cover", Text, nullable=True),
    Column("coverSquare", Text, nullable=True),
    Column("lastModified", String(64), nullable=True),
    Column("shortened", Text, nullable=True),
    Column("shortExcerpt", Text, nullable=True),
)

post_tags = Table(
    "post_tags",
    metadata,
    Column("slug", String(512), ForeignKey("posts.slug"), primary_key=True),
    Column("tag", String(256), primary_key=True),
)

post_keywords = Table(
    "post_keywords",
    metadata,
    Column("slug", String(512), ForeignKey("posts.slug"), primary_key=True),
    Column("keyword", String(256), primary_key=True),
)

views = Table(
    "views",
    metadata,
    Column("slug", String(512), ForeignKey("posts.slug"), primary_key=True),
    Column("count", Integer, nullable=False, default=0),
)
