from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, DateTime

from plotreport.db.base import Base


class PlotReport(Base):
    __tablename__ = "plot_reports"

    id: Mapped[int] = mapped_column(primary_key=True)
    plot_number: Mapped[str] = mapped_column(String(128), default="", index=True)

    report_type: Mapped[str] = mapped_column(String(32), default="pdf")
    source_tier: Mapped[str] = mapped_column(String(32), default="None")
    file_path: Mapped[str] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
