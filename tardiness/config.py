from __future__ import annotations
import os
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from .models import SchoolMeta
from .utils import load_json, save_json, settings_path

logger = logging.getLogger(__name__)

ROWS_PER_PAGE = 22
RASTER_WIDTH = 1240  # px, roughly A4 at 150 dpi
PDF_PAGE_WIDTH_MM = 210.0


@dataclass
class Settings:
    school_name: str = ""
    manager_name: str = ""
    supervisor_name: str = ""
    logo_path: Optional[str] = None
    rows_per_page: int = ROWS_PER_PAGE
    raster_width: int = RASTER_WIDTH
    font_path: Optional[str] = None

    @property
    def school(self) -> SchoolMeta:
        return SchoolMeta(
            school_name=self.school_name,
            manager_name=self.manager_name,
            supervisor_name=self.supervisor_name,
            logo_path=self.logo_path,
        )


def _as_int(x: Any, default: int) -> int:
    try:
        v = int(x)
    except (TypeError, ValueError):
        return default
    return v if v > 0 else default


def load_settings() -> Settings:
    raw: Dict[str, Any] = load_json(settings_path(), {})
    if not isinstance(raw, dict):
        raw = {}

    s = Settings(
        school_name=str(raw.get("school_name", raw.get("schoolName", "")) or ""),
        manager_name=str(raw.get("manager_name", raw.get("managerName", "")) or ""),
        supervisor_name=str(raw.get("supervisor_name", raw.get("supervisorName", "")) or ""),
        logo_path=raw.get("logo_path") or None,
        rows_per_page=_as_int(raw.get("rows_per_page"), ROWS_PER_PAGE),
        raster_width=_as_int(raw.get("raster_width"), RASTER_WIDTH),
        font_path=raw.get("font_path") or None,
    )

    # environment wins over the file
    env_rows = os.environ.get("LATE_TRACKER_ROWS_PER_PAGE")
    if env_rows:
        s.rows_per_page = _as_int(env_rows, s.rows_per_page)
    env_font = os.environ.get("LATE_TRACKER_FONT_PATH")
    if env_font:
        s.font_path = env_font
    return s


def save_settings(s: Settings) -> None:
    save_json(settings_path(), asdict(s))
    logger.info("Settings saved to %s", settings_path())
