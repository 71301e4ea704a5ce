"""
Tests for text sanitization and slug helpers
"""

from app.utils.sanitize import sanitize_description, sanitize_multiline, sanitize_plain_text
from app.utils.slugify import slugify, to_base36


class TestSanitizePlainText:
    def test_strips_tags(self):
        assert sanitize_plain_text("<b>Jane</b> <script>alert(1)</script>Doe") == "Jane alert(1)Doe"

    def test_collapses_whitespace(self):
        assert sanitize_plain_text("  Jane \n\t Doe  ") == "Jane Doe"

    def test_none_stays_none(self):
        assert sanitize_plain_text(None) is None


class TestSanitizeDescription:
    def test_keeps_light_formatting(self):
        assert sanitize_description("<p>Our <strong>best</strong> day</p>") == "<p>Our <strong>best</strong> day</p>"

    def test_drops_unsafe_links_and_attributes(self):
        cleaned = sanitize_description('<a href="javascript:alert(1)" onclick="x()">click</a>')
        assert "javascript" not in cleaned
        assert "onclick" not in cleaned
        assert "click" in cleaned

    def test_strips_disallowed_tags(self):
        assert sanitize_description("<img src=x onerror=alert(1)>Hi") == "Hi"


class TestSanitizeMultiline:
    def test_keeps_line_breaks(self):
        assert sanitize_multiline("Line one  \n<i>Line two</i>\n") == "Line one\nLine two"


class TestSlugify:
    def test_ascii_folding(self):
        assert slugify("Foto Čakovec & Söhne") == "foto-cakovec-sohne"

    def test_empty(self):
        assert slugify("") == ""
        assert slugify(None) == ""


class TestBase36:
    def test_values(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"
        assert int(to_base36(1_750_000_000_000), 36) == 1_750_000_000_000
