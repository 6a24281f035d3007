import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple, Union

from lxml import etree

from plotreport.core.exceptions import ParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KmlNode:
    """
    Immutable view of one KML element.

    Tags are local names (namespace stripped), so lookups read like the file:
    ``doc.find("Folder", "Placemark", "LookAt")``. Every accessor returns ``None``
    for an absent node instead of an empty placeholder.
    """
    tag: str
    text: Optional[str] = None
    attrib: Dict[str, str] = field(default_factory=dict)
    children: Tuple["KmlNode", ...] = ()

    def child(self, name: str) -> Optional["KmlNode"]:
        for c in self.children:
            if c.tag == name:
                return c
        return None

    def children_named(self, name: str) -> Iterator["KmlNode"]:
        return (c for c in self.children if c.tag == name)

    def find(self, *path: str) -> Optional["KmlNode"]:
        node: Optional[KmlNode] = self
        for name in path:
            if node is None:
                return None
            node = node.child(name)
        return node

    def text_at(self, *path: str) -> Optional[str]:
        node = self.find(*path)
        return node.text if node is not None else None


def _parser() -> etree.XMLParser:
    # no DTD/entity expansion and no network fetches for uploaded files
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        huge_tree=False,
    )


def _local(tag) -> Optional[str]:
    if not isinstance(tag, str):
        return None  # processing instructions etc.
    return etree.QName(tag).localname


def _inner_markup(el) -> str:
    # HTML written inline (not CDATA) inside <description> comes back as elements
    parts = [el.text or ""]
    for c in el:
        parts.append(etree.tostring(c, encoding="unicode", with_tail=True))
    return "".join(parts)


def _build(el) -> KmlNode:
    element_children = [c for c in el if _local(c.tag)]
    if element_children and _local(el.tag) == "description":
        text = _inner_markup(el)
        kids: Tuple[KmlNode, ...] = ()
    else:
        text = el.text
        kids = tuple(_build(c) for c in element_children)
    text = text.strip() if text else None
    return KmlNode(
        tag=_local(el.tag),
        text=text or None,
        attrib={_local(k): v for k, v in el.attrib.items()},
        children=kids,
    )


def parse_document(raw: Union[str, bytes]) -> KmlNode:
    """
    Parse KML text into a KmlNode tree rooted at the document element.

    Raises ParseError for anything that is not well-formed XML; no partial tree is
    ever returned.
    """
    try:
        data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        if not data.strip():
            raise ParseError("The uploaded KML file is empty.")
        root = etree.fromstring(data, parser=_parser())
    except ParseError:
        logger.warning("rejected empty KML upload")
        raise
    except (etree.XMLSyntaxError, UnicodeError, ValueError) as e:
        logger.warning("KML parse failed: %s", e)
        raise ParseError() from e

    return _build(root)


def document_node(root: KmlNode) -> Optional[KmlNode]:
    """The <Document> container; tolerate files whose root element already is one."""
    if root.tag == "Document":
        return root
    return root.child("Document")


def first_folder_placemark(root: KmlNode) -> Optional[KmlNode]:
    """First Placemark of the first nested Folder: the plot feature."""
    doc = document_node(root)
    if doc is None:
        return None
    return doc.find("Folder", "Placemark")
