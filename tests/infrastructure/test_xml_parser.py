"""Tests for the secure XML document resolver.

Security Impact:
    - Verifies entity declarations are rejected before parsing
    - Confirms depth and event limits are enforced
    - Ensures malformed documents fail with UnsupportedSourceError
"""

import pytest
from lxml import etree

from migrate_transforms.domain.ports import SecurityError, SourceNotFoundError, UnsupportedSourceError
from migrate_transforms.infrastructure.xml_parser import SecureXMLParser, resolve_document

ENTITY_BOMB = b"""<?xml version="1.0"?>
<!DOCTYPE lolz [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;&lol;">]>
<lolz>&lol2;</lolz>"""

EXTERNAL_ENTITY = b"""<?xml version="1.0"?>
<!DOCTYPE foo [<!ENTITY xxe SYSTEM "file:///etc/passwd">]>
<foo>&xxe;</foo>"""


@pytest.fixture
def parser():
    return SecureXMLParser()


class TestParseBytes:
    """Test in-memory parsing."""

    def test_parse(self, parser):
        """Test parsing a well-formed document."""
        root = parser.parse_bytes(b"<a><b>1</b></a>")
        assert root.tag == "a"
        assert root.findtext("b") == "1"

    @pytest.mark.parametrize("data", [ENTITY_BOMB, EXTERNAL_ENTITY])
    def test_entities_rejected(self, parser, data):
        """Test that entity declarations raise SecurityError."""
        with pytest.raises(SecurityError):
            parser.parse_bytes(data)

    def test_malformed_rejected(self, parser):
        """Test that malformed XML raises UnsupportedSourceError."""
        with pytest.raises(UnsupportedSourceError, match="Invalid XML format"):
            parser.parse_bytes(b"<a><b></a>")

    def test_depth_limit(self):
        """Test that documents deeper than the limit are rejected."""
        parser = SecureXMLParser(max_depth=2)
        parser.parse_bytes(b"<a><b><c/></b></a>")
        with pytest.raises(SecurityError, match="depth limit"):
            parser.parse_bytes(b"<a><b><c><d/></c></b></a>")

    def test_whitespace_preserved(self, parser):
        """Test that blank text survives parsing."""
        root = parser.parse_bytes(b"<a>\n  <b/>\n</a>")
        assert etree.tostring(root, encoding="unicode") == "<a>\n  <b/>\n</a>"


class TestParseDocument:
    """Test source resolution."""

    def test_element_passthrough(self, parser):
        """Test that parsed elements are returned as-is."""
        root = etree.fromstring("<a/>")
        assert parser.parse_document(root) is root
        assert parser.parse_document(etree.ElementTree(root)) is root

    def test_xml_text(self, parser):
        """Test that text starting with '<' is parsed as XML."""
        assert parser.parse_document("<a x='1'/>").get("x") == "1"

    def test_file_path(self, parser, tmp_path):
        """Test parsing a file by path."""
        xml_file = tmp_path / "doc.xml"
        xml_file.write_bytes(b"<doc><v>1</v></doc>")
        assert parser.parse_document(xml_file).tag == "doc"
        assert parser.parse_document(str(xml_file)).tag == "doc"

    def test_missing_file(self, parser):
        """Test that a missing file raises SourceNotFoundError."""
        with pytest.raises(SourceNotFoundError):
            parser.parse_document("/nonexistent/doc.xml")

    def test_unsupported_type(self, parser):
        """Test that other source types raise UnsupportedSourceError."""
        with pytest.raises(UnsupportedSourceError):
            parser.parse_document(42)

    def test_resolve_document(self):
        """Test the module-level resolver."""
        assert resolve_document(b"<r/>").tag == "r"


class TestIterElements:
    """Test streaming iteration."""

    @pytest.fixture
    def stream_file(self, tmp_path):
        xml_file = tmp_path / "stream.xml"
        xml_file.write_text(
            "<root>" + "".join(f"<item n='{i}'><v>{i}</v></item>" for i in range(5)) + "</root>",
            encoding="utf-8"
        )
        return xml_file

    def test_streams_items(self, parser, stream_file):
        """Test that every item is yielded complete and in order."""
        with parser.iter_elements(stream_file, "item") as items:
            seen = [(item.get("n"), item.findtext("v")) for item in items]
        assert seen == [(str(i), str(i)) for i in range(5)]

    def test_processed_items_are_released(self, parser, stream_file):
        """Test that earlier items are cleared and then removed from the tree."""
        with parser.iter_elements(stream_file, "item") as items:
            for item in items:
                previous = item.getprevious()
                assert previous is None or (len(previous) == 0 and previous.get("n") is None)
                assert previous is None or previous.getprevious() is None

    def test_event_limit(self, stream_file):
        """Test that the item limit raises SecurityError."""
        parser = SecureXMLParser(max_events=3)
        with pytest.raises(SecurityError, match="event limit"):
            with parser.iter_elements(stream_file, "item") as items:
                list(items)

    def test_missing_file(self, parser):
        """Test that a missing file raises SourceNotFoundError."""
        with pytest.raises(SourceNotFoundError):
            with parser.iter_elements("/nonexistent/stream.xml", "item"):
                pass

    def test_malformed_file(self, parser, tmp_path):
        """Test that malformed content raises UnsupportedSourceError."""
        xml_file = tmp_path / "bad.xml"
        xml_file.write_text("<root><item n='1'></root>", encoding="utf-8")
        with pytest.raises(UnsupportedSourceError):
            with parser.iter_elements(xml_file, "item") as items:
                list(items)
