import html
import logging
import re
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from plotreport.services.kml import KmlNode, document_node, first_folder_placemark
from plotreport.utils.strings import norm_str, normalize_units, strip_trailing_commas

logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Canonical field name → label as written in the cadastral export (Greek locale).
# Order is the order fields appear on the report.
# ──────────────────────────────────────────────────────────────────────────────
FIELD_LABELS = {
    "Municipality": "Δήμος",
    "Area": "Εμβαδό",
    "SheetPlan": "Αρ. Φ/Σχ",
    "RegistrationNo": "Αριθμός εγγραφης",
    "PropertyType": "Ειδος Ακινήτου",
    "Zone": "Ζώνη",
    "ZoneDescription": "Ζωνη Περιγραφή",
    "BuildingCoefficient": "Δόμηση",
    "Coverage": "Κάλυψη",
    "Floors": "Ορόφοι",
    "Height": "Υψος",
    "Value2018": "Αξία 2018",
    "Value2021": "Αξία 2021",
}

# Fields filled from another label rather than one of their own
FIELD_ALIASES = {
    "PlotArea": "Area",
    "Location": "Municipality",
}

FIELD_NAMES = ("PlotNumber",) + tuple(FIELD_LABELS) + tuple(FIELD_ALIASES)


@lru_cache(maxsize=64)
def _label_regex(label: str) -> re.Pattern:
    # label must start at a word boundary, with ":" directly after it, then an emphasized span
    return re.compile(
        r"(?<!\w)" + re.escape(label) + r":\s*<(?P<tag>b|strong)\b[^>]*>(?P<value>.*?)</(?P=tag)\s*>",
        flags=re.IGNORECASE | re.DOTALL,
    )


def extract(node: Optional[KmlNode], label: str) -> str:
    """
    Value of the first ``Label: <b>value</b>`` pair in the node's text, or "".
    """
    if node is None or not node.text or not label or not label.strip():
        return ""
    m = _label_regex(label.strip()).search(node.text)
    if not m:
        return ""
    return html.unescape(m.group("value")).strip()


def extract_fields(root: KmlNode) -> Mapping[str, str]:
    """
    Build the ParsedFieldSet for a parsed document.

    Every name in FIELD_NAMES is present; labels missing from the narrative give "".
    """
    doc = document_node(root)
    plot_number = norm_str(doc.text_at("name")) if doc is not None else None

    placemark = first_folder_placemark(root)
    description = placemark.child("description") if placemark is not None else None
    if description is None:
        logger.debug("no Folder/Placemark description; field set will be blank")

    fields = {"PlotNumber": normalize_units(plot_number)}
    for name, label in FIELD_LABELS.items():
        value = normalize_units(extract(description, label))
        if not value:
            logger.debug("label %r not found in description", label)
        fields[name] = value

    fields["Floors"] = strip_trailing_commas(fields["Floors"])
    for name, source in FIELD_ALIASES.items():
        fields[name] = fields[source]

    return MappingProxyType(fields)
