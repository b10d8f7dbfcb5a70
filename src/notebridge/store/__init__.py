"""Relational store of published posts."""

from .posts import PostStore, SqlPostStore
from .schema import metadata, post_keywords, post_tags, posts, views

__all__ = [
    "PostStore",
    "SqlPostStore",
    "metadata",
    "post_keywords",
    "post_tags",
    "posts",
    "views",
]
