import re
from typing import Optional

# Greek small mu and the micro sign both show up in exported unit strings ("μ²")
_MU_TABLE = str.maketrans({"μ": "m", "µ": "m"})
_TRAILING_COMMAS_RE = re.compile(r"[\s,]+$")


def norm_str(s: Optional[str]) -> Optional[str]:
    if isinstance(s, str):
        s = s.strip()
        return s or None
    return None


def normalize_units(s: Optional[str]) -> str:
    """Rewrite mu characters to ASCII ``m``; everything else is left as is."""
    if not s:
        return ""
    return s.translate(_MU_TABLE)


def strip_trailing_commas(s: str) -> str:
    return _TRAILING_COMMAS_RE.sub("", s)
