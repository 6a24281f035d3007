# plotreport/core/config.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from starlette.middleware.cors import CORSMiddleware

FONTS_DIR = Path(__file__).resolve().parents[1] / "static" / "fonts"


class Settings(BaseSettings):
    # Pydantic Settings
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",          # ignore unknown env keys safely
        case_sensitive=False,
    )

    # --- App ---
    app_name: str = "PlotReport"
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # --- Uploads ---
    max_upload_bytes: int = Field(5 * 1024 * 1024, alias="PR_MAX_UPLOAD_BYTES")

    # --- Directories / Paths ---
    reports_dir: str = Field("resources/reports", alias="PR_REPORTS_DIR")
    logo_path: str = Field("plotreport/static/logo.png", alias="PR_LOGO_PATH")
    # TTFs with Greek glyphs (bundled DejaVu Sans by default)
    font_path: Optional[str] = Field(str(FONTS_DIR / "DejaVuSans.ttf"), alias="PR_FONT_PATH")
    font_bold_path: Optional[str] = Field(str(FONTS_DIR / "DejaVuSans-Bold.ttf"), alias="PR_FONT_BOLD_PATH")

    # --- Database ---
    database_url: str = Field("sqlite:///./resources/plotreport.db", alias="DATABASE_URL")

    # --- CORS ---
    # Comma-separated in .env or leave default list
    allowed_origins: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, v):
        # Accept "a,b,c" or JSON array; pass lists through.
        if v is None:
            return []
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return str(v or "INFO").strip().upper()


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def configure_cors(app):
    http_origins = [o for o in settings.allowed_origins if o.startswith("http")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=http_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
