"""
Unit tests for the MIME table.
"""

import pytest

from webparts.http.mime_types import (
    MimeType,
    default_mime_types_map,
    extend_mime_types,
    mime_type_for,
    mk_mime_type,
)


class TestDefaultTable:
    """Tests for the built-in extension table."""

    @pytest.mark.parametrize("extension,name,compression", [
        (".html", "text/html", True),
        (".css", "text/css", True),
        (".js", "application/javascript", True),
        (".png", "image/png", False),
        (".jpg", "image/jpeg", False),
        (".svg", "image/svg+xml", True),
    ])
    def test_known(self, extension, name, compression):
        assert default_mime_types_map(extension) == MimeType(name, compression)

    def test_unknown_is_none(self):
        assert default_mime_types_map(".xyz") is None
        assert default_mime_types_map("") is None

    def test_case_and_dot_insensitive(self):
        assert default_mime_types_map(".HTML") == default_mime_types_map("html")


class TestExtendMimeTypes:
    """Tests for configured overrides."""

    def test_override_wins(self):
        lookup = extend_mime_types({".html": ("text/x-custom", False)})
        assert lookup(".html") == mk_mime_type("text/x-custom", False)

    def test_new_extension_and_fallback(self):
        lookup = extend_mime_types({"avif": mk_mime_type("image/avif", False)})
        assert lookup(".AVIF").name == "image/avif"
        assert lookup(".css").name == "text/css"
        assert lookup(".nope") is None

    def test_default_table_untouched(self):
        extend_mime_types({".html": ("text/x-custom", False)})
        assert default_mime_types_map(".html").name == "text/html"


def test_mime_type_for_path():
    assert mime_type_for("/site/Index.HTML").name == "text/html"
    assert mime_type_for("README") is None
