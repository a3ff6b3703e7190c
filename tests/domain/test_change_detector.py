"""Tests for ChangeDetector service.

These tests verify that field-level changes are derived from content hashes,
for ExtractedRecord instances as well as their flattened rows.
"""

import json

import pytest
from lxml import etree

from migrate_transforms.domain.models import FieldChange
from migrate_transforms.domain.services.change_detector import ChangeDetector, detect_changes
from migrate_transforms.domain.services.xml_record_extractor import extract_record

SELECTORS = {"title": "title", "creator": "creator", "date": "date"}


def _record(xml):
    return extract_record(etree.fromstring(xml), SELECTORS)


@pytest.fixture
def detector():
    return ChangeDetector()


@pytest.fixture
def original():
    return _record("<o><title>A</title><creator>Ann</creator><creator>Bob</creator></o>")


class TestChangeDetector:
    """Test change detection between two extractions."""

    def test_identical_records_have_no_changes(self, detector, original):
        """Test that a record compared with itself has no changes."""
        assert detector.is_unchanged(original, original)
        assert detector.detect_changes(original, original) == []

    def test_updated_field(self, detector, original):
        """Test that a changed leaf is reported as an UPDATE."""
        current = _record("<o><title>B</title><creator>Ann</creator><creator>Bob</creator></o>")
        changes = detector.detect_changes(original, current)

        assert not detector.is_unchanged(original, current)
        assert len(changes) == 1
        assert changes[0].field_name == "title"
        assert changes[0].change_type == "UPDATE"
        assert changes[0].old_hash == original.hashes["title"]
        assert changes[0].new_hash == current.hashes["title"]

    def test_inserted_and_deleted_fields(self, detector, original):
        """Test that appearing and disappearing fields are reported in order."""
        current = _record("<o><title>A</title><date>2020</date></o>")
        changes = detector.detect_changes(original, current)

        assert [(c.field_name, c.change_type) for c in changes] == [
            ("date", "INSERT"),
            ("creator", "DELETE"),
        ]
        assert changes[1].new_hash is None

    def test_new_record(self, detector, original):
        """Test that every field of a new record is an INSERT."""
        changes = detector.detect_changes(None, original)
        assert [(c.field_name, c.change_type) for c in changes] == [
            ("title", "INSERT"),
            ("creator", "INSERT"),
        ]
        assert not detector.is_unchanged(None, original)

    def test_rows_are_accepted(self, detector, original):
        """Test that flattened rows compare like records."""
        current = _record("<o><title>B</title><creator>Ann</creator><creator>Bob</creator></o>")
        assert detector.detect_changes(original.to_row(), current.to_row()) == detector.detect_changes(original, current)
        assert detector.is_unchanged(original.to_row(), original)

    def test_module_function(self, original):
        """Test the module-level shortcut."""
        assert detect_changes(original, original) == []


class TestFieldChange:
    """Test the change event model."""

    def test_audit_dict_serializes_list_hashes(self, original):
        """Test that multi-valued hashes are serialized as JSON."""
        change = FieldChange(field_name="creator", change_type="DELETE", old_hash=original.hashes["creator"])
        audit = change.to_audit_dict()
        assert json.loads(audit["old_hash"]) == original.hashes["creator"]
        assert audit["new_hash"] is None

    def test_invalid_change_type(self):
        """Test that unknown change types are rejected."""
        with pytest.raises(ValueError):
            FieldChange(field_name="x", change_type="MERGE")
