"""Tests for error reporting."""

from __future__ import annotations

import io

from stitch.core.errors import BuildSyntaxError, ConfigError, TypeDetectionError
from stitch.core.logging import BuildLog
from stitch.core.reporter import EXIT_FAILURE, ErrorReporter


def _reporter(tmp_path, quiet: bool = False) -> tuple[ErrorReporter, io.StringIO]:
    stream = io.StringIO()
    return ErrorReporter(BuildLog(quiet=quiet, stream=stream), cwd=tmp_path), stream


def test_syntax_error_with_location(tmp_path):
    reporter, stream = _reporter(tmp_path)
    error = BuildSyntaxError("Unexpected token } (3:1)", str(tmp_path / "lib" / "index.js"), 3, 1)

    assert reporter.report(error) == EXIT_FAILURE
    assert "Syntax error: Unexpected token } (3:1) in: lib/index.js" in stream.getvalue()


def test_plain_message_is_wrapped(tmp_path):
    reporter, _stream = _reporter(tmp_path)
    text = reporter.format("engine exploded")
    assert "BuildError: engine exploded" in text


def test_generic_error_has_traceback(tmp_path):
    reporter, _stream = _reporter(tmp_path)
    try:
        raise RuntimeError("kaput")
    except RuntimeError as e:
        text = reporter.format(e)
    assert text.startswith("Traceback (most recent call last):")
    assert text.endswith("RuntimeError: kaput")


def test_setup_errors_are_friendly(tmp_path):
    reporter, stream = _reporter(tmp_path)
    reporter.report(TypeDetectionError())
    out = stream.getvalue()
    assert "could not detect the file type" in out
    assert "Traceback" not in out
    assert reporter.format(ConfigError("bad", "fix it")) == "bad\nSuggestion: fix it"


def test_syntax_error_without_file_uses_detail(tmp_path):
    reporter, _stream = _reporter(tmp_path)
    assert "BuildSyntaxError" in reporter.format(BuildSyntaxError("oops"))


def test_quiet_skips_end_flush(tmp_path):
    reporter, stream = _reporter(tmp_path, quiet=True)
    reporter.report("broken")
    assert not stream.getvalue().endswith("\n\n")
    assert "broken" in stream.getvalue()
