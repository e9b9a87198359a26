"""Tests for Mesita utility modules."""

import logging


class TestEscapeHtml:
    def test_special_characters(self) -> None:
        from mesita.utils.text import escape_html

        assert escape_html("<a href=\"x\">'&'</a>") == (
            "&lt;a href=&quot;x&quot;&gt;&#x27;&amp;&#x27;&lt;/a&gt;"
        )

    def test_empty(self) -> None:
        from mesita.utils.text import escape_html

        assert escape_html("") == ""

    def test_plain_text_unchanged(self) -> None:
        from mesita.utils.text import escape_html

        assert escape_html("Alice 30") == "Alice 30"


class TestStyleHelpers:
    def test_format_style(self) -> None:
        from mesita.utils.text import format_style

        assert format_style({"color": "red", "border": "1px solid #ddd"}) == (
            "color: red; border: 1px solid #ddd"
        )
        assert format_style({}) == ""

    def test_parse_style(self) -> None:
        from mesita.utils.text import parse_style

        assert parse_style("Color: red;; border:1px solid;junk") == {
            "color": "red",
            "border": "1px solid",
        }

    def test_parse_keeps_colons_in_values(self) -> None:
        from mesita.utils.text import parse_style

        assert parse_style("background: url(a:b)") == {"background": "url(a:b)"}


class TestGetLogger:
    def test_prefix_added(self) -> None:
        from mesita.utils.logger import get_logger

        assert get_logger("reconciler").name == "mesita.reconciler"

    def test_module_names_kept(self) -> None:
        from mesita.utils.logger import get_logger

        assert get_logger("mesita.plugin").name == "mesita.plugin"
        assert get_logger("mesita").name == "mesita"

    def test_returns_stdlib_logger(self) -> None:
        from mesita.utils.logger import get_logger

        assert isinstance(get_logger("x"), logging.Logger)
