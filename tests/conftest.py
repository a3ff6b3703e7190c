"""Shared fixtures for the test suite."""

import pytest

FOXML_NS = "info:fedora/fedora-system:def/foxml#"
DC_NS = "http://purl.org/dc/elements/1.1/"
OAI_DC_NS = "http://www.openarchives.org/OAI/2.0/oai_dc/"


@pytest.fixture
def foxml_export():
    """A small FOXML-style export with two digital objects."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<export xmlns:foxml="{FOXML_NS}">
  <foxml:digitalObject PID="demo:1">
    <foxml:objectProperties>
      <foxml:property NAME="label" VALUE="  First object  "/>
      <foxml:property NAME="state" VALUE="Active"/>
    </foxml:objectProperties>
    <foxml:datastream ID="DC">
      <oai_dc:dc xmlns:oai_dc="{OAI_DC_NS}" xmlns:dc="{DC_NS}">
        <dc:title>First</dc:title>
        <dc:identifier>demo:1</dc:identifier>
      </oai_dc:dc>
    </foxml:datastream>
  </foxml:digitalObject>
  <foxml:digitalObject PID="demo:2">
    <foxml:objectProperties>
      <foxml:property NAME="label" VALUE="Second object"/>
    </foxml:objectProperties>
  </foxml:digitalObject>
</export>
"""


@pytest.fixture
def foxml_config():
    """Extractor configuration matching the foxml_export fixture."""
    return {
        "item_selector": "//foxml:digitalObject",
        "namespaces": {"foxml": FOXML_NS, "oai_dc": OAI_DC_NS},
        "record_tag": "{" + FOXML_NS + "}digitalObject",
        "fields": {
            "pid": "@PID",
            "label": "foxml:objectProperties/foxml:property[@NAME='label']/@VALUE",
            "state": "foxml:objectProperties/foxml:property[@NAME='state']/@VALUE",
            "dc": ".//oai_dc:dc",
        },
    }
