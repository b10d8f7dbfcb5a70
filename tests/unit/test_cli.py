"""Tests for the notebridge command line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from notebridge import __version__
from notebridge.api import HttpTransport
from notebridge.cli import app
from notebridge.models import HttpResponse

ENV = {
    "NOTEBRIDGE_UPLOAD_URL": "https://blog.test/api/upload",
    "NOTEBRIDGE_UNPUBLISH_URL": "https://blog.test/api/unpublish",
    "NOTEBRIDGE_TOKEN": "cli-token",
}


def write_note(tmp_path: Path) -> Path:
    note = tmp_path / "hello.md"
    note.write_text("---\ntitle: Hello\n---\n![[pic.png]]\n", encoding="utf-8")
    (tmp_path / "pic.png").write_bytes(b"\x89PNG")
    return note


def test_cli_shows_help() -> None:
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "publish" in result.stdout
    assert "unpublish" in result.stdout


def test_cli_version_command() -> None:
    result = CliRunner().invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_publish_success(tmp_path: Path) -> None:
    note = write_note(tmp_path)
    with patch.object(HttpTransport, "post", return_value=HttpResponse(200)) as post:
        result = CliRunner().invoke(app, ["publish", str(note)], env=ENV)

    assert result.exit_code == 0
    assert "Note uploaded successfully!" in result.output
    url, headers, _body = post.call_args.args
    assert url == "https://blog.test/api/upload"
    assert headers["Authorization"] == "Bearer cli-token"


def test_publish_failure_exits_1(tmp_path: Path) -> None:
    note = write_note(tmp_path)
    with patch.object(HttpTransport, "post", return_value=HttpResponse(500)):
        result = CliRunner().invoke(app, ["publish", str(note)], env=ENV)

    assert result.exit_code == 1
    assert "Upload failed" in result.output


def test_unpublish_with_vault_option(tmp_path: Path) -> None:
    vault = tmp_path / "vault"
    (vault / "blog").mkdir(parents=True)
    note = write_note(vault / "blog")
    with patch.object(HttpTransport, "post", return_value=HttpResponse(200)) as post:
        result = CliRunner().invoke(
            app, ["unpublish", str(note), "--vault", str(vault)], env=ENV,
        )

    assert result.exit_code == 0
    assert "Note unpublished successfully!" in result.output
    assert post.call_args.args[0] == "https://blog.test/api/unpublish"


def test_missing_note_is_usage_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["publish", str(tmp_path / "absent.md")], env=ENV)
    assert result.exit_code == 2


def test_invalid_configuration_exits_2(tmp_path: Path) -> None:
    note = write_note(tmp_path)
    env = dict(ENV, NOTEBRIDGE_UPLOAD_MODE="sideways")
    result = CliRunner().invoke(app, ["publish", str(note)], env=env)
    assert result.exit_code == 2
    assert "upload_mode" in result.output
