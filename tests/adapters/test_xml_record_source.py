"""Tests for the XML record source adapter.

These tests verify that the record source:
- Validates its configuration up front
- Yields one success Result per item subtree
- Converts per-item failures into failure Results instead of raising
- Produces identical records in streaming and in-memory mode
"""

import json
import tempfile
from pathlib import Path

import pytest

from migrate_transforms.adapters.xml_record_source import XMLRecordSource
from migrate_transforms.domain.hashing import content_hash
from migrate_transforms.domain.ports import Result, SourceNotFoundError, UnsupportedSourceError


@pytest.fixture
def export_file(tmp_path, foxml_export):
    xml_file = tmp_path / "export.xml"
    xml_file.write_text(foxml_export, encoding="utf-8")
    return xml_file


class TestXMLRecordSourceInitialization:
    """Test XMLRecordSource initialization."""

    def test_init_with_config_dict(self, foxml_config):
        """Test initialization with config dictionary."""
        source = XMLRecordSource(config_dict=foxml_config)

        assert source.adapter_name == "xml_record_source"
        assert source.config.item_selector == "//foxml:digitalObject"
        assert list(source.config.fields) == ["pid", "label", "state", "dc"]
        assert source.max_record_size == 10 * 1024 * 1024

    def test_init_with_config_path(self, foxml_config):
        """Test initialization with config file path."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump(foxml_config, f)
            temp_path = f.name

        try:
            source = XMLRecordSource(config_path=temp_path)
            assert source.config.record_tag == foxml_config["record_tag"]
        finally:
            Path(temp_path).unlink()

    def test_init_requires_config(self):
        """Test that initialization fails without config."""
        with pytest.raises(ValueError, match="Must specify either config_path or config_dict"):
            XMLRecordSource()

    def test_init_rejects_both_configs(self, foxml_config):
        """Test that initialization fails with both config_path and config_dict."""
        with pytest.raises(ValueError, match="Cannot specify both"):
            XMLRecordSource(config_path="config.json", config_dict=foxml_config)

    def test_init_rejects_invalid_config(self):
        """Test that an invalid configuration raises ValueError."""
        with pytest.raises(ValueError, match="Invalid extractor configuration"):
            XMLRecordSource(config_dict={"fields": {}})

    def test_streaming_requires_record_tag(self):
        """Test that forced streaming needs a record tag."""
        with pytest.raises(ValueError, match="record_tag"):
            XMLRecordSource(config_dict={"fields": {"pid": "@PID"}}, streaming_enabled=True)


class TestXMLRecordSourceRead:
    """Test reading records."""

    def test_read_xml_text(self, foxml_config, foxml_export):
        """Test one success Result per item."""
        results = list(XMLRecordSource(config_dict=foxml_config).read(foxml_export))

        assert len(results) == 2
        assert all(isinstance(r, Result) and r.is_success() for r in results)

        first, second = (r.value for r in results)
        assert first["pid"] == "demo:1"
        assert first["label"] == "First object"
        assert first["label_hash"] == content_hash("  First object  ")
        assert first["state"] == "Active"
        assert first["dc"].startswith("<oai_dc:dc")
        assert second["pid"] == "demo:2"
        assert "state" not in second
        assert "dc" not in second

    def test_read_file(self, foxml_config, export_file):
        """Test reading a document from a file path."""
        results = list(XMLRecordSource(config_dict=foxml_config, streaming_enabled=False).read(str(export_file)))
        assert [r.value["pid"] for r in results] == ["demo:1", "demo:2"]

    def test_streaming_matches_in_memory(self, foxml_config, export_file):
        """Test that streaming and in-memory parsing yield identical records."""
        in_memory = list(XMLRecordSource(config_dict=foxml_config, streaming_enabled=False).read(export_file))
        streamed = list(XMLRecordSource(config_dict=foxml_config, streaming_enabled=True).read(export_file))

        assert [r.value.to_row() for r in streamed] == [r.value.to_row() for r in in_memory]

    def test_streaming_threshold(self, foxml_config, export_file):
        """Test that automatic streaming follows the size threshold."""
        assert XMLRecordSource(config_dict=foxml_config, streaming_threshold=1)._should_use_streaming(export_file)
        assert not XMLRecordSource(config_dict=foxml_config)._should_use_streaming(export_file)

    def test_failing_selector_yields_failures(self, foxml_config, foxml_export):
        """Test that a selector error becomes a failure Result per item."""
        config = dict(foxml_config, fields={"pid": "@PID", "props": "count(foxml:objectProperties)"})
        results = list(XMLRecordSource(config_dict=config).read(foxml_export))

        assert len(results) == 2
        assert all(r.is_failure() for r in results)
        assert results[0].error_type == "ExtractionError"
        assert results[0].error_details["record_index"] == 1
        assert results[1].error_details["record_index"] == 2
        assert results[0].error_details["field_name"] == "props"
        assert results[0].error_details["xpath"] == "count(foxml:objectProperties)"

    def test_oversized_record(self, foxml_config, foxml_export):
        """Test that records above the size limit are rejected."""
        results = list(XMLRecordSource(config_dict=foxml_config, max_record_size=10).read(foxml_export))
        assert all(r.is_failure() for r in results)
        assert "exceeds maximum size" in results[0].error

    def test_no_items(self, foxml_config):
        """Test that a document without items yields nothing."""
        assert list(XMLRecordSource(config_dict=foxml_config).read("<export/>")) == []

    def test_root_item(self):
        """Test that the default item selector extracts the root."""
        source = XMLRecordSource(config_dict={"fields": {"v": "v"}})
        results = list(source.read(b"<r><v>1</v></r>"))
        assert len(results) == 1
        assert results[0].value["v"] == "1"

    def test_missing_file(self, foxml_config):
        """Test that a missing file raises SourceNotFoundError."""
        with pytest.raises(SourceNotFoundError):
            list(XMLRecordSource(config_dict=foxml_config).read("/nonexistent/export.xml"))

    def test_malformed_document(self, foxml_config):
        """Test that malformed XML raises UnsupportedSourceError."""
        with pytest.raises(UnsupportedSourceError):
            list(XMLRecordSource(config_dict=foxml_config).read("<export><broken></export>"))


class TestXMLRecordSourceInfo:
    """Test source metadata helpers."""

    def test_can_read(self, foxml_config):
        """Test that only XML paths are accepted."""
        source = XMLRecordSource(config_dict=foxml_config)
        assert source.can_read("export.xml")
        assert source.can_read("EXPORT.XML")
        assert not source.can_read("export.json")
        assert not source.can_read("")

    def test_get_source_info(self, foxml_config, export_file):
        """Test metadata for an existing file."""
        info = XMLRecordSource(config_dict=foxml_config).get_source_info(str(export_file))
        assert info["format"] == "xml"
        assert info["size"] == export_file.stat().st_size
        assert info["streaming"] is False

    def test_get_source_info_missing(self, foxml_config):
        """Test that missing files have no metadata."""
        assert XMLRecordSource(config_dict=foxml_config).get_source_info("/nonexistent.xml") is None
