"""Secure XML Document Resolver.

This module turns raw XML (bytes, text, files) into lxml element trees for
the record extractor, and streams item elements out of large files.

Security Impact:
    - Raw documents are screened with defusedxml: entity declarations and
      external references are rejected before lxml sees the content
    - lxml runs with entity resolution and network access disabled
    - Depth and event limits prevent resource exhaustion
    - Blank text is preserved so serializations (and content hashes) reflect
      the pristine source document

Architecture:
    - Infrastructure adapter for the document-resolution contract
    - Streaming mode wraps lxml.etree.iterparse and releases every processed
      item, so memory usage is O(item_size) instead of O(file_size)
"""

import gc
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError
from lxml import etree

from migrate_transforms.domain.ports import (
    SecurityError,
    SourceNotFoundError,
    UnsupportedSourceError,
)

logger = logging.getLogger(__name__)

DocumentSource = Union[bytes, str, Path, Any]


class SecureXMLParser:
    """Secure XML parser built on lxml with defusedxml screening.

    Example Usage:
        ```python
        parser = SecureXMLParser(max_depth=100)
        root = parser.parse_document("export.xml")

        with parser.iter_elements("huge.xml", record_tag="{info:fedora/fedora-system:def/foxml#}digitalObject") as items:
            for item in items:
                process(item)
        ```
    """

    def __init__(
        self,
        max_events: int = 1000000,
        max_depth: int = 100,
        huge_tree: bool = False
    ):
        """Initialize parser with security limits.

        Parameters:
            max_events: Maximum number of streamed items (prevents DoS)
            max_depth: Maximum XML nesting depth
            huge_tree: Allow huge XML trees (default: False for security)
        """
        self.max_events = max_events
        self.max_depth = max_depth
        self.huge_tree = huge_tree
        self.event_count = 0

    def _create_parser(self) -> etree.XMLParser:
        """Create lxml parser with security settings.

        Security Impact:
            - resolve_entities=False: Prevents entity expansion attacks
            - no_network=True: Prevents network access during parsing
            - huge_tree=False: Prevents quadratic blowup attacks
            - recover=False: Fail fast on malformed XML
        """
        return etree.XMLParser(
            huge_tree=self.huge_tree,
            strip_cdata=False,
            resolve_entities=False,
            no_network=True,
            recover=False,
            remove_blank_text=False
        )

    def _screen(self, data: bytes, source: Optional[str]) -> None:
        """Reject entity declarations and external references.

        Raises:
            SecurityError: If defusedxml flags the document
            UnsupportedSourceError: If the document is not well-formed
        """
        try:
            SafeET.fromstring(data, forbid_dtd=False, forbid_entities=True, forbid_external=True)
        except DefusedXmlException as e:
            raise SecurityError(f"Unsafe XML rejected in {source or 'document'}: {e!r}")
        except SafeParseError as e:
            raise UnsupportedSourceError(
                f"Invalid XML format in {source or 'document'}: {str(e)}",
                source=source
            )

    def _check_depth(self, root: Any, source: Optional[str]) -> None:
        for elem in root.iter():
            depth = sum(1 for _ in elem.iterancestors())
            if depth > self.max_depth:
                raise SecurityError(
                    f"XML depth limit exceeded in {source or 'document'}: "
                    f"{depth} > {self.max_depth}."
                )

    def parse_bytes(self, data: bytes, source: Optional[str] = None) -> Any:
        """Parse raw XML bytes into a root element.

        Parameters:
            data: Raw XML document
            source: Source identifier for error messages

        Returns:
            lxml root element

        Raises:
            SecurityError: If the document is unsafe or too deep
            UnsupportedSourceError: If the document is not well-formed
        """
        self._screen(data, source)
        try:
            root = etree.fromstring(data, parser=self._create_parser())
        except etree.XMLSyntaxError as e:
            raise UnsupportedSourceError(
                f"Invalid XML format in {source or 'document'}: {str(e)}",
                source=source
            )
        self._check_depth(root, source)
        return root

    def parse_document(self, source: DocumentSource) -> Any:
        """Resolve any supported document source into an lxml element.

        Parameters:
            source: lxml element or element tree (returned as-is), raw bytes,
                    XML text (a str starting with '<'), or a file path

        Returns:
            lxml element

        Raises:
            SourceNotFoundError: If a file path does not exist
            UnsupportedSourceError: If the source type or content is unsupported
            SecurityError: If the document is unsafe
        """
        if isinstance(source, etree._ElementTree):
            return source.getroot()
        if isinstance(source, etree._Element):
            return source
        if isinstance(source, (bytes, bytearray)):
            return self.parse_bytes(bytes(source))
        if isinstance(source, str) and source.lstrip().startswith('<'):
            return self.parse_bytes(source.encode('utf-8'))
        if isinstance(source, (str, Path)):
            source_path = Path(source)
            if not source_path.exists():
                raise SourceNotFoundError(
                    f"XML source not found: {source}",
                    source=str(source)
                )
            try:
                data = source_path.read_bytes()
            except OSError as e:
                raise SourceNotFoundError(
                    f"Cannot read XML source {source}: {str(e)}",
                    source=str(source)
                )
            return self.parse_bytes(data, source=str(source))

        raise UnsupportedSourceError(
            f"Xml of type '{type(source).__name__}' cannot be handled."
        )

    @contextmanager
    def iter_elements(self, source: Union[str, Path], record_tag: str) -> Iterator[Iterator[Any]]:
        """Stream the elements with a given tag out of an XML file.

        Each yielded element is complete (its end tag has been read) and still
        attached to its ancestors, so its namespace context is intact. It is
        cleared and detached as soon as the consumer asks for the next one.

        Parameters:
            source: Path to XML file
            record_tag: Tag of the item elements ("{uri}local" or "local")

        Yields:
            Iterator[Any]: Iterator of lxml elements

        Raises:
            SourceNotFoundError: If the file does not exist
            SecurityError: If event or depth limits are exceeded
            UnsupportedSourceError: If the XML is malformed
        """
        source_path = Path(source)
        if not source_path.exists():
            raise SourceNotFoundError(
                f"XML source not found: {source}",
                source=str(source)
            )

        self.event_count = 0

        with open(source_path, 'rb') as xml_file:
            context = etree.iterparse(
                xml_file,
                events=('end',),
                tag=record_tag,
                huge_tree=self.huge_tree,
                resolve_entities=False,
                no_network=True,
                recover=False,
                remove_blank_text=False
            )

            def record_iterator() -> Iterator[Any]:
                try:
                    for _event, elem in context:
                        self.event_count += 1
                        if self.event_count > self.max_events:
                            raise SecurityError(
                                f"XML event limit exceeded: {self.event_count:,} > {self.max_events:,}."
                            )
                        depth = sum(1 for _ in elem.iterancestors())
                        if depth > self.max_depth:
                            raise SecurityError(
                                f"XML depth limit exceeded: {depth} > {self.max_depth}."
                            )

                        yield elem

                        # Release the processed item and everything before it.
                        elem.clear(keep_tail=False)
                        parent = elem.getparent()
                        if parent is not None:
                            while elem.getprevious() is not None:
                                del parent[0]

                        if self.event_count % 500 == 0:
                            gc.collect()
                except etree.XMLSyntaxError as e:
                    raise UnsupportedSourceError(
                        f"Invalid XML format in {source}: {str(e)}",
                        source=str(source)
                    )

            yield record_iterator()


_default_parser: Optional[SecureXMLParser] = None


def get_parser() -> SecureXMLParser:
    """Get the shared parser configured from settings."""
    global _default_parser
    if _default_parser is None:
        from migrate_transforms.infrastructure.settings import settings
        _default_parser = SecureXMLParser(
            max_events=settings.xml_max_events,
            max_depth=settings.xml_max_depth
        )
    return _default_parser


def resolve_document(source: DocumentSource) -> Any:
    """Resolve a document source into an lxml element with the shared parser.

    See SecureXMLParser.parse_document for accepted source types.
    """
    return get_parser().parse_document(source)
