"""Unit tests for core.detection."""

from __future__ import annotations

import time

import pytest

from stitch.core.detection import detect_type, type_from_path


class TestTypeFromPath:
    def test_extension(self):
        assert type_from_path("lib/index.js") == "js"
        assert type_from_path("styles/Main.CSS") == "css"

    def test_no_extension(self):
        assert type_from_path("Makefile") is None


class TestDetectType:
    @pytest.mark.parametrize(
        "source",
        [
            "var a = require('a');\nmodule.exports = a;",
            "const add = (a, b) => a + b;",
            "import x from './x';\nexport default x;",
            "console.log('hi');",
            "function hello() { return 1; }",
        ],
    )
    def test_javascript(self, source):
        assert detect_type(source) == "js"

    @pytest.mark.parametrize(
        "source",
        [
            "body {\n  color: red;\n}",
            ".nav > li:hover { margin: 0 }",
            "@import 'base.css';\n",
        ],
    )
    def test_css(self, source):
        assert detect_type(source) == "css"

    def test_json(self):
        assert detect_type('{"name": "app", "version": "1.0.0"}') == "json"

    def test_html(self):
        assert detect_type("<!doctype html>\n<html></html>") == "html"

    @pytest.mark.parametrize("source", ["", "   \n", "just some plain words", "{ not: json"])
    def test_undetectable(self, source):
        assert detect_type(source) is None

    def test_css_needs_declarations(self):
        assert detect_type("a { just words }") is None

    @pytest.mark.parametrize(
        "source",
        [
            "x{" + "a:" * 5000,
            "x{" + "a: b " * 5000,
            ".a " * 5000,
        ],
    )
    def test_unclosed_rules_are_rejected_quickly(self, source):
        started = time.perf_counter()
        assert detect_type(source) is None
        assert time.perf_counter() - started < 1.0
