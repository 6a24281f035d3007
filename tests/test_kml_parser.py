import pytest

from plotreport.core.exceptions import ParseError
from plotreport.services.kml import KmlNode, document_node, first_folder_placemark, parse_document


def test_parse_strips_namespace_and_keeps_order(sample_kml):
    root = parse_document(sample_kml)
    assert root.tag == "kml"
    doc = document_node(root)
    assert [c.tag for c in doc.children] == ["name", "Placemark", "Folder"]
    assert doc.text_at("name") == "Plot 0/12345"


def test_cdata_description_is_kept_as_markup(sample_kml):
    placemark = first_folder_placemark(parse_document(sample_kml))
    text = placemark.text_at("description")
    assert "Δήμος: <b>Lemesos</b>" in text


def test_inline_html_description_is_serialized():
    raw = (
        "<kml><Document><Folder><Placemark>"
        "<description>Δήμος: <b>Pafos</b> and more</description>"
        "</Placemark></Folder></Document></kml>"
    )
    placemark = first_folder_placemark(parse_document(raw))
    assert placemark.text_at("description") == "Δήμος: <b>Pafos</b> and more"


def test_bytes_with_declaration_are_accepted(sample_kml):
    root = parse_document(sample_kml.encode("utf-8"))
    assert document_node(root) is not None


def test_absent_nodes_are_none_not_empty(sample_kml):
    root = parse_document(sample_kml)
    assert root.find("Document", "Nope", "Deeper") is None
    assert root.text_at("Document", "Folder", "Placemark", "LookAt", "latitude") is None


def test_root_document_element_is_accepted():
    root = parse_document("<Document><name>A</name></Document>")
    assert document_node(root) is root


@pytest.mark.parametrize("raw", [
    "<kml><Document><name>unterminated</Document></kml>",
    "<kml><Document>",
    "",
    "   ",
    "not xml at all",
    b"<kml>\xff\xfe</kml>",
])
def test_malformed_documents_raise_parse_error(raw):
    with pytest.raises(ParseError):
        parse_document(raw)


def test_nodes_are_immutable(sample_kml):
    root = parse_document(sample_kml)
    with pytest.raises(AttributeError):
        root.tag = "other"
    assert isinstance(root.children, tuple)
    assert isinstance(root.children[0], KmlNode)
