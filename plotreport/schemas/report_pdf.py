from __future__ import annotations
from pydantic import BaseModel


class ReportNarrative(BaseModel):
    """Wizard inputs that are not read from the KML."""
    bank_name: str = ""
    report_type: str = ""
    report_title: str = ""
    report_date: str = ""
    introduction: str = ""
    plot_description: str = ""
    findings: str = ""
    conclusion: str = ""
