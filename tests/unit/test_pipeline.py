"""End-to-end tests for notebridge/pipeline.py.

A real vault on ``tmp_path``, a recording transport and an in-memory
SQLite store; nothing leaves the process.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine, select

from notebridge import pipeline as pipeline_module
from notebridge.api import HttpTransport
from notebridge.config import NotebridgeConfig
from notebridge.errors import NotebridgeStoreError
from notebridge.images import ImageResolver
from notebridge.models import HttpResponse, Post, PublishState
from notebridge.pipeline import PublishPipeline, publish_note, unpublish_note
from notebridge.store import SqlPostStore, post_keywords, post_tags, posts

PNG = b"\x89PNG\r\n\x1a\n-b-"
JPG = b"\xff\xd8\xff-c-"

REVALIDATE = "https://blog.test/api/revalidate"

COVER_NOTE = "---\ncover: c.jpg\n---\n![[b.png]]\n"


@pytest.fixture
def store():
    s = SqlPostStore(create_engine("sqlite://"))
    s.create_schema()
    yield s
    s.close()


@pytest.fixture
def cover_vault(make_vault):
    return make_vault({
        "post.md": COVER_NOTE,
        "c.jpg": JPG,
        "attachments/b.png": PNG,
    })


def run_publish(vault, config, transport, store=None, path="post.md"):
    pipeline = PublishPipeline(config, vault, transport=transport, store=store)
    return pipeline.publish(vault.load_document(path))


def run_unpublish(vault, config, transport, store=None, path="post.md"):
    pipeline = PublishPipeline(config, vault, transport=transport, store=store)
    return pipeline.unpublish(vault.load_document(path))


# ---------------------------------------------------------------------------
# Publish, batch mode
# ---------------------------------------------------------------------------

class TestPublishBatch:
    def test_cover_and_embed_uploaded_in_one_request(
        self, cover_vault, config, transport, parse_multipart,
    ):
        result = run_publish(cover_vault, config, transport)

        assert result.success is True
        assert result.message == "Note uploaded successfully!"
        assert result.slug == "post"
        assert result.state is PublishState.DONE
        assert result.images_uploaded == 2

        (request,) = transport.requests
        assert request.url == config.upload_url
        parts = parse_multipart(request.body, request.headers["Content-Type"])
        fields = {p.name: p.data for p in parts if p.filename is None}
        files = [p for p in parts if p.filename is not None]
        assert fields["slug"] == b"post"
        assert len(files) == 2
        assert {(p.name, p.filename, p.content_type, p.data) for p in files} == {
            ("images", "b.png", "image/png", PNG),
            ("images", "c.jpg", "image/jpeg", JPG),
        }

    def test_content_field_has_normalized_embeds(self, cover_vault, config, transport, parse_multipart):
        run_publish(cover_vault, config, transport)
        (request,) = transport.requests
        parts = parse_multipart(request.body, request.headers["Content-Type"])
        content = next(p.data for p in parts if p.name == "content").decode()
        assert "![b.png](/b.png)" in content
        assert "![[b.png]]" not in content

    def test_same_file_via_two_references_uploaded_once(self, make_vault, config, transport):
        vault = make_vault({
            "post.md": "![a](b.png) ![[attachments/b.png]]",
            "attachments/b.png": PNG,
        })
        result = run_publish(vault, config, transport)
        assert result.images_uploaded == 1

    def test_missing_image_skipped_with_warning(self, make_vault, config, transport):
        vault = make_vault({"post.md": "![[missing.png]] ![a](ok.png)", "ok.png": PNG})
        with patch.object(pipeline_module.log, "warning") as warn:
            result = run_publish(vault, config, transport)

        assert result.success is True
        assert result.images_uploaded == 1
        assert result.skipped == ["missing.png"]
        assert "missing.png" in result.message
        warn.assert_called_once()
        assert warn.call_args.kwargs["extra"]["extra_fields"]["raw_path"] == "missing.png"

    def test_remote_reference_never_resolved(self, make_vault, config, transport):
        vault = make_vault({"post.md": "![x](http://host/a.png)"})
        with patch.object(ImageResolver, "resolve") as resolve:
            result = run_publish(vault, config, transport)
        resolve.assert_not_called()
        assert result.success is True
        assert result.images_uploaded == 0

    def test_slug_from_frontmatter(self, make_vault, config, transport, parse_multipart):
        vault = make_vault({"notes/My Post.md": "---\nslug: custom-slug\n---\nHi"})
        result = run_publish(vault, config, transport, path="notes/My Post.md")
        assert result.slug == "custom-slug"
        (request,) = transport.requests
        parts = parse_multipart(request.body, request.headers["Content-Type"])
        assert {p.name: p.data for p in parts}["slug"] == b"custom-slug"

    def test_upload_failure_fails_publish(self, cover_vault, config, transport, store):
        transport.default = HttpResponse(500, b"server error")
        result = run_publish(cover_vault, config, transport, store)

        assert result.success is False
        assert result.message == "Error: Upload failed with status: 500"
        assert result.state is PublishState.FAILED
        assert store.get("post") is None

    def test_invalid_frontmatter_fails_without_requests(self, make_vault, config, transport):
        vault = make_vault({"post.md": "---\ntitle: [broken\n---\nBody"})
        result = run_publish(vault, config, transport)
        assert result.success is False
        assert result.message.startswith("Error: Invalid frontmatter YAML")
        assert transport.requests == []

    def test_metrics(self, cover_vault, transport):
        hook = MagicMock()
        config = NotebridgeConfig(token="t", metrics=hook)
        run_publish(cover_vault, config, transport)
        hook.increment.assert_any_call("notebridge.publish_total", tags={"outcome": "success"})
        resolved = [c for c in hook.increment.call_args_list if c.args == ("notebridge.images_resolved_total",)]
        assert len(resolved) == 2


# ---------------------------------------------------------------------------
# Publish, per-image mode
# ---------------------------------------------------------------------------

class TestPublishPerImage:
    def test_urls_rewritten_in_stored_post(self, cover_vault, transport, store, parse_multipart):
        config = NotebridgeConfig(token="t", upload_mode="per_image")
        transport.responses = [
            HttpResponse(200, b'{"url": "https://cdn.test/b.png"}'),
            HttpResponse(200, b'{"url": "https://cdn.test/c.jpg"}'),
        ]
        result = run_publish(cover_vault, config, transport, store)

        assert result.success is True
        assert len(transport.requests) == 2
        first = parse_multipart(transport.requests[0].body, transport.requests[0].headers["Content-Type"])
        assert [(p.name, p.filename) for p in first] == [("url", None), ("image", "b.png")]

        stored = store.get("post")
        assert "![b.png](https://cdn.test/b.png)" in stored.content
        assert stored.cover == "https://cdn.test/c.jpg"

    def test_every_reference_to_one_file_rewritten(self, make_vault, transport, store):
        vault = make_vault({"note.md": "![a](img.png) ![b](sub/img.png)\n", "sub/img.png": PNG})
        config = NotebridgeConfig(token="t", upload_mode="per_image")
        transport.default = HttpResponse(200, b'{"url": "https://cdn.test/x.png"}')
        result = run_publish(vault, config, transport, store, path="note.md")

        assert result.success is True
        assert len(transport.requests) == 1
        stored = store.get("note")
        assert stored.content.strip() == "![a](https://cdn.test/x.png) ![b](https://cdn.test/x.png)"

    def test_cover_sharing_file_with_embed_rewritten(self, make_vault, transport, store):
        vault = make_vault({
            "post.md": "---\ncover: attachments/b.png\n---\n![[b.png]]\n",
            "attachments/b.png": PNG,
        })
        config = NotebridgeConfig(token="t", upload_mode="per_image")
        transport.default = HttpResponse(200, b'{"url": "https://cdn.test/b.png"}')
        result = run_publish(vault, config, transport, store)

        assert result.success is True
        assert len(transport.requests) == 1
        stored = store.get("post")
        assert stored.cover == "https://cdn.test/b.png"
        assert "![b.png](https://cdn.test/b.png)" in stored.content

    def test_rewrite_matches_whole_targets_only(self):
        content = "![a](a.png) ![d](data.png)"
        rewritten = pipeline_module._rewrite_targets(content, {"a.png": "https://cdn/a.png"})
        assert rewritten == "![a](https://cdn/a.png) ![d](data.png)"

    def test_failed_image_upload_fails_publish(self, cover_vault, transport):
        config = NotebridgeConfig(token="t", upload_mode="per_image")
        transport.default = HttpResponse(403, b"no")
        result = run_publish(cover_vault, config, transport)
        assert result.success is False
        assert "403" in result.message


# ---------------------------------------------------------------------------
# Persistence and revalidation
# ---------------------------------------------------------------------------

class TestPersistAndRevalidate:
    def test_post_persisted_with_frontmatter(self, make_vault, config, transport, store):
        vault = make_vault({
            "hello.md": "---\ntitle: Hello\ntags: [a, '#b']\nkeywords: x, y\n---\nFirst paragraph.\n",
        })
        result = run_publish(vault, config, transport, store, path="hello.md")
        assert result.success is True

        stored = store.get("hello")
        assert stored.title == "Hello"
        assert stored.tags == {"a", "b"}
        assert stored.keywords == {"x", "y"}
        assert stored.excerpt == "First paragraph."
        assert stored.last_modified is not None

    def test_revalidation_called_after_publish(self, cover_vault, transport):
        config = NotebridgeConfig(token="t", revalidate_url=REVALIDATE)
        result = run_publish(cover_vault, config, transport)
        assert result.success is True
        (request,) = transport.requests_to(REVALIDATE)
        assert json.loads(request.body) == {"slug": "post", "content": COVER_NOTE}

    def test_revalidation_failure_keeps_store_write(self, cover_vault, transport, store):
        config = NotebridgeConfig(token="t", revalidate_url=REVALIDATE)
        transport.responses = [HttpResponse(200), HttpResponse(502, b"bad gateway")]
        result = run_publish(cover_vault, config, transport, store)

        assert result.success is False
        assert result.message.startswith("Published, but revalidation failed")
        assert result.images_uploaded == 2
        assert store.get("post") is not None

    def test_store_failure_skips_revalidation(self, cover_vault, transport):
        config = NotebridgeConfig(token="t", revalidate_url=REVALIDATE)
        failing = MagicMock()
        failing.upsert.side_effect = NotebridgeStoreError(message="db down")
        result = run_publish(cover_vault, config, transport, failing)

        assert result.success is False
        assert result.message == "Error: db down"
        assert transport.requests_to(REVALIDATE) == []
        assert len(transport.requests_to(config.upload_url)) == 1


# ---------------------------------------------------------------------------
# Unpublish
# ---------------------------------------------------------------------------

class TestUnpublish:
    def test_removes_rows_and_revalidates_once(self, cover_vault, config, transport, store):
        store.upsert(Post(slug="post", title="T", content="c", tags={"a"}, keywords={"k"}))

        result = run_unpublish(cover_vault, config, transport, store)

        assert result.success is True
        assert result.message == "Note unpublished successfully!"
        with store._engine.connect() as conn:
            for table in (posts, post_tags, post_keywords):
                assert conn.execute(select(table).where(table.c.slug == "post")).all() == []
        assert len(transport.requests) == 1
        (request,) = transport.requests
        assert request.url == config.unpublish_url
        assert request.headers["Authorization"] == "Bearer test_token_1234"

    def test_no_image_uploads(self, cover_vault, config, transport):
        run_unpublish(cover_vault, config, transport)
        assert transport.requests_to(config.upload_url) == []

    def test_revalidation_failure_after_delete(self, cover_vault, config, transport, store):
        store.upsert(Post(slug="post", title="T", content="c"))
        transport.default = HttpResponse(500)
        result = run_unpublish(cover_vault, config, transport, store)
        assert result.success is False
        assert store.get("post") is None

    def test_multipart_variant(self, make_vault, transport, parse_multipart):
        vault = make_vault({"post.md": "---\ntags: [x, y]\nshortened: sh\n---\nBody"})
        config = NotebridgeConfig(token="t", revalidate_format="multipart")
        run_unpublish(vault, config, transport)
        (request,) = transport.requests
        parts = parse_multipart(request.body, request.headers["Content-Type"])
        assert {p.name: p.data for p in parts} == {
            "slug": b"post", "shortened": b"sh", "tags": b"x,y",
        }


# ---------------------------------------------------------------------------
# Paths and free functions
# ---------------------------------------------------------------------------

class TestEntryPoints:
    def test_publish_path_unreadable(self, make_vault, config, transport):
        vault = make_vault({})
        pipeline = PublishPipeline(config, vault, transport=transport)
        result = pipeline.publish_path("nope.md")
        assert result.success is False
        assert "cannot read note" in result.message

    def test_publish_note_defaults_vault_to_note_folder(self, cover_vault, config):
        with patch.object(HttpTransport, "post", return_value=HttpResponse(200)) as post:
            result = publish_note(cover_vault.root / "post.md", config)
        assert result.success is True
        assert result.images_uploaded == 2
        post.assert_called_once()

    @pytest.mark.parametrize("entry", [publish_note, unpublish_note])
    def test_bad_database_url_returns_failure(self, cover_vault, entry):
        config = NotebridgeConfig(token="t", database_url="not a url")
        with patch.object(HttpTransport, "post") as post:
            result = entry(cover_vault.root / "post.md", config)
        assert result.success is False
        assert "Cannot open store" in result.message
        post.assert_not_called()

    def test_unpublish_note_with_store(self, cover_vault, tmp_path):
        db = tmp_path / "posts.db"
        setup = SqlPostStore.from_url(f"sqlite:///{db}")
        setup.create_schema()
        setup.upsert(Post(slug="post", title="T", content="c"))
        setup.close()

        config = NotebridgeConfig(token="t", database_url=f"sqlite:///{db}")
        with patch.object(HttpTransport, "post", return_value=HttpResponse(200)):
            result = unpublish_note(cover_vault.root / "post.md", config, vault_root=cover_vault.root)

        assert result.success is True
        check = SqlPostStore.from_url(f"sqlite:///{db}")
        assert check.get("post") is None
        check.close()
