"""XML Record Extractor Service.

Extracts one record from an XML subtree using a mapping of field name ->
XPath selector, and computes content hashes used to detect unchanged
content across migration runs.

For every matched node:
    - an element with child elements is kept as XML: its pristine
      serialization is hashed into `<field>_hash`, then it is re-serialized
      with every in-scope namespace declared on its own start tag so that
      the fragment parses on its own, and stored in `<field>`
    - anything else (text-only element, attribute, text node, comment) is
      hashed as raw text into `<field>_hash` and stored trimmed in `<field>`

The whole subtree is hashed into `hash` before any field is evaluated.
Fields with exactly one match are reduced to scalars; fields with several
matches stay lists; fields without matches are absent.

Security Impact:
    - Only already-parsed trees are accepted here; raw documents go through
      the secure resolver in infrastructure.xml_parser
    - Extracted fragments are copied strings, never live tree handles

Architecture:
    - Stateless per call; safe to run concurrently on disjoint subtrees
    - Field and hash order mirror selector declaration order
    - XPath evaluation failures raise ExtractionError; no partial record is
      ever returned
"""

import copy
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional

from lxml import etree

from migrate_transforms.domain.hashing import content_hash
from migrate_transforms.domain.models import ExtractedRecord
from migrate_transforms.domain.ports import (
    ExtractionError,
    SecurityError,
    UnsupportedSourceError,
)
from migrate_transforms.domain.values import is_empty, kind_of

logger = logging.getLogger(__name__)


def register_namespaces(node: Any, namespaces: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect the prefix bindings selectors may use on a node.

    Every prefixed namespace in scope on the node (its own and inherited
    declarations) is registered first, then prefixes declared further down
    the subtree, then the configured bindings, which take precedence.

    Parameters:
        node: lxml element
        namespaces: Configured prefix -> URI bindings

    Returns:
        dict: Prefix -> URI mapping for XPath evaluation
    """
    registered: Dict[str, str] = {}
    for prefix, uri in node.nsmap.items():
        if prefix:
            registered[prefix] = uri
    for element in node.iter(etree.Element):
        for prefix, uri in element.nsmap.items():
            if prefix and prefix not in registered:
                registered[prefix] = uri
    if namespaces:
        registered.update(namespaces)
    return registered


def serialize(element: Any) -> str:
    """Serialize an element (without its tail) as it appears in the source."""
    return etree.tostring(element, encoding='unicode', with_tail=False)


def serialize_with_namespaces(element: Any) -> str:
    """Serialize an element as a self-contained fragment.

    Every namespace in scope on the element, whether declared on the element
    itself or inherited from an ancestor, is declared on the fragment's start
    tag, so QNames in element names, attributes and attribute values resolve
    the same way outside the original document.
    """
    nsmap = dict(sorted(element.nsmap.items(), key=lambda item: item[0] or ''))
    fragment = etree.Element(element.tag, attrib=dict(element.attrib), nsmap=nsmap)
    fragment.text = element.text
    for child in element:
        fragment.append(copy.deepcopy(child))
    return etree.tostring(fragment, encoding='unicode', with_tail=False)


def _is_element(node: Any) -> bool:
    return isinstance(node, etree._Element) and isinstance(node.tag, str)


def _has_child_elements(element: Any) -> bool:
    return any(isinstance(child.tag, str) for child in element)


def _text_value(node: Any) -> str:
    """String value of a matched node: direct text for elements, value otherwise."""
    if _is_element(node):
        return ''.join(node.xpath('text()'))
    if isinstance(node, etree._Element):
        # Comments and processing instructions.
        return node.text or ''
    if isinstance(node, tuple):
        # namespace:: axis results are (prefix, uri) pairs.
        return str(node[1])
    return str(node)


def evaluate_path(node: Any, xpath: str, namespaces: Mapping[str, str], field_name: Optional[str] = None) -> List[Any]:
    """Evaluate an XPath selector that must yield a node list.

    Parameters:
        node: Context element
        xpath: XPath 1.0 expression
        namespaces: Registered prefix -> URI bindings
        field_name: Field the selector belongs to (for error messages)

    Returns:
        list: Matched nodes in document order (empty if nothing matches)

    Raises:
        ExtractionError: If the expression is invalid, uses an unbound prefix,
                         or evaluates to a number, boolean or string
    """
    label = f"field '{field_name}'" if field_name else "value"
    try:
        result = node.xpath(xpath, namespaces=dict(namespaces))
    except etree.XPathError as e:
        raise ExtractionError(
            f"Error retrieving {label} with XPath '{xpath}': {str(e)}",
            field_name=field_name,
            xpath=xpath
        )
    if not isinstance(result, list):
        raise ExtractionError(
            f"Error retrieving {label} with XPath '{xpath}': "
            f"expected a node list, got '{type(result).__name__}'",
            field_name=field_name,
            xpath=xpath
        )
    return result


def _collapse(collected: Dict[str, List[Any]]) -> Dict[str, Any]:
    return {
        field_name: entries[0] if len(entries) == 1 else entries
        for field_name, entries in collected.items()
    }


class XmlRecordExtractor:
    """Extract records from XML subtrees with a fixed set of field selectors.

    Parameters:
        selectors: Ordered mapping field name -> XPath (relative to the item)
        namespaces: Extra prefix -> URI bindings available to every selector

    Raises:
        ExtractionError: If a selector is not a valid XPath expression

    Example Usage:
        ```python
        extractor = XmlRecordExtractor({
            "pid": "@PID",
            "label": "foxml:objectProperties/foxml:property[@NAME='label']/@VALUE",
            "dc": ".//oai_dc:dc",
        })
        record = extractor.extract(object_element)
        record.to_row()
        # {'hash': '...', 'pid': 'demo:1', 'pid_hash': '...', 'label': ..., ...}
        ```
    """

    def __init__(self, selectors: Mapping[str, str], namespaces: Optional[Mapping[str, str]] = None):
        self.selectors: Dict[str, str] = dict(selectors)
        self.namespaces: Dict[str, str] = dict(namespaces or {})

        for field_name, xpath in self.selectors.items():
            try:
                etree.XPath(xpath)
            except etree.XPathError as e:
                raise ExtractionError(
                    f"Invalid XPath for field '{field_name}': '{xpath}' ({str(e)})",
                    field_name=field_name,
                    xpath=xpath
                )

    def extract(self, node: Any) -> ExtractedRecord:
        """Extract one record from a subtree.

        Parameters:
            node: lxml element (or element tree) holding one record

        Returns:
            ExtractedRecord: Field values, per-field hashes and subtree hash

        Raises:
            ExtractionError: If any selector cannot be evaluated to a node list
        """
        if isinstance(node, etree._ElementTree):
            node = node.getroot()
        if not _is_element(node):
            raise ExtractionError(
                f"Cannot extract a record from '{type(node).__name__}', expected an XML element."
            )

        namespaces = register_namespaces(node, self.namespaces)

        # Hash the pristine subtree before anything else.
        record_hash = content_hash(serialize(node))

        values: Dict[str, List[Any]] = {}
        hashes: Dict[str, List[str]] = {}

        for field_name, xpath in self.selectors.items():
            for match in evaluate_path(node, xpath, namespaces, field_name=field_name):
                if _is_element(match) and _has_child_elements(match):
                    # Keep substructures as XML.
                    hashes.setdefault(field_name, []).append(content_hash(serialize(match)))
                    values.setdefault(field_name, []).append(serialize_with_namespaces(match))
                else:
                    text = _text_value(match)
                    hashes.setdefault(field_name, []).append(content_hash(text))
                    values.setdefault(field_name, []).append(text.strip())

        logger.debug(
            f"Extracted {len(values)} of {len(self.selectors)} fields from <{etree.QName(node).localname}>"
        )

        return ExtractedRecord(
            hash=record_hash,
            values=_collapse(values),
            hashes=_collapse(hashes)
        )

    def iter_records(self, document: Any, item_selector: str = ".") -> Iterator[ExtractedRecord]:
        """Extract one record per item subtree of a document.

        Parameters:
            document: lxml element/tree, or raw XML handed to the secure resolver
            item_selector: XPath selecting the item elements ("." = the root itself)

        Yields:
            ExtractedRecord: One per matched item, in document order

        Raises:
            ExtractionError: If the item selector fails or matches non-elements
        """
        for item in self.select_items(document, item_selector):
            yield self.extract(item)

    def select_items(self, document: Any, item_selector: str = ".") -> List[Any]:
        """Resolve a document and return the item elements to extract."""
        if not isinstance(document, (etree._Element, etree._ElementTree)):
            from migrate_transforms.infrastructure.xml_parser import resolve_document
            document = resolve_document(document)
        root = document.getroot() if isinstance(document, etree._ElementTree) else document

        if item_selector.strip() == ".":
            return [root]

        items = evaluate_path(root, item_selector, register_namespaces(root, self.namespaces))
        for item in items:
            if not _is_element(item):
                raise ExtractionError(
                    f"Item selector '{item_selector}' matched a non-element ('{type(item).__name__}').",
                    xpath=item_selector
                )
        return items


def extract_record(
    node: Any,
    selectors: Mapping[str, str],
    namespaces: Optional[Mapping[str, str]] = None
) -> ExtractedRecord:
    """Extract one record from a subtree (see XmlRecordExtractor.extract)."""
    return XmlRecordExtractor(selectors, namespaces=namespaces).extract(node)


def select_values(value: Any, namespaces: Optional[Mapping[str, str]] = None) -> Optional[List[str]]:
    """Retrieve the trimmed string values an XPath selects from a piece of XML.

    Parameters:
        value: Two-item list [xml, xpath]; xml is XML text or an lxml element
        namespaces: Extra prefix -> URI bindings

    Returns:
        Optional[List[str]]: None for empty input, otherwise one string per match

    Raises:
        ExtractionError: If the value is malformed, the XML cannot be parsed,
                         or the XPath does not yield a node list

    Example:
        ```python
        select_values(["<a><b> x </b><b>y</b></a>", "//b"])  # ['x', 'y']
        ```
    """
    # Only process non-empty values.
    if is_empty(value):
        return None

    if not isinstance(value, (list, tuple)):
        raise ExtractionError(f"Value '{value}' is not an array, but '{kind_of(value)}'.")
    if len(value) != 2:
        raise ExtractionError(
            f"Value is not an array with 2 values, but has {len(value)} values."
        )

    xml, xpath = value

    if isinstance(xml, (str, bytes)):
        from migrate_transforms.infrastructure.xml_parser import get_parser
        try:
            data = xml.encode('utf-8') if isinstance(xml, str) else xml
            xml = get_parser().parse_bytes(data)
        except (UnsupportedSourceError, SecurityError) as e:
            raise ExtractionError(f"Error while parsing xml: {str(e)}", xpath=xpath)
    elif isinstance(xml, etree._ElementTree):
        xml = xml.getroot()
    elif not isinstance(xml, etree._Element):
        raise ExtractionError(f"Xml of type '{kind_of(xml)}' cannot be handled.", xpath=xpath)

    matches = evaluate_path(xml, xpath, register_namespaces(xml, namespaces))
    return [_text_value(match).strip() for match in matches]
