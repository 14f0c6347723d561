"""Tests for GitHub Actions runner I/O helpers."""

from __future__ import annotations

from structlog.testing import capture_logs

from cfpages.actions import mask, set_output


def test_set_output_appends(tmp_path):
    path = tmp_path / "out"
    set_output("url", "https://x.test", str(path))
    set_output("count", "2", str(path))
    assert path.read_text() == "url=https://x.test\ncount=2\n"


def test_set_output_multiline_uses_delimiter(tmp_path):
    path = tmp_path / "out"
    set_output("notes", "a\nb", str(path))
    lines = path.read_text().splitlines()
    assert lines[0].startswith("notes<<ghadelimiter_")
    assert lines[1:3] == ["a", "b"]
    assert lines[3] == lines[0].split("<<", 1)[1]


def test_set_output_without_file_logs():
    with capture_logs() as logs:
        set_output("url", "https://x.test")
    assert logs[0]["event"] == "Step output"
    assert logs[0]["value"] == "https://x.test"


def test_mask(capsys):
    mask("s3cret")
    mask("")
    assert capsys.readouterr().out == "::add-mask::s3cret\n"
