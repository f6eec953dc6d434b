from __future__ import annotations
import logging
from datetime import date
from io import BytesIO
from typing import Any, List, Optional, Sequence, Tuple
from PIL import Image, ImageDraw, ImageFont
from .config import RASTER_WIDTH
from .errors import RasterizationFailure
from .models import Page, SchoolMeta

logger = logging.getLogger(__name__)

# Layout of one page, in pixels at RENDER_WIDTH
RENDER_WIDTH = 1240
MARGIN = 48
ROW_H = 38
HEAD_ROW_H = 44
NUM_COL_W = 64
LOGO_H = 96

TEXT = (17, 24, 39)
MUTED = (107, 114, 128)
GRID = (156, 163, 175)
HEAD_FILL = (229, 231, 235)
WHITE = (255, 255, 255)

# wider share of the table for these keys
WIDE_KEYS = {"student_name": 3.0, "dates": 3.5, "notes": 2.5}

CONTINUED = "يتبع في الصفحة التالية"
SUPERVISOR_LABEL = "مشرف السجل"
MANAGER_LABEL = "مدير المدرسة"
ROW_NUMBER_LABEL = "م"


def load_font(size: int, font_path: Optional[str] = None):
    if font_path:
        return ImageFont.truetype(font_path, size)
    return ImageFont.load_default(size=size)


def _text_size(draw: ImageDraw.ImageDraw, text: str, font) -> Tuple[int, int]:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    return right - left, bottom - top


def _fit(draw: ImageDraw.ImageDraw, text: str, font, max_w: int) -> str:
    if _text_size(draw, text, font)[0] <= max_w:
        return text
    while text and _text_size(draw, text + "…", font)[0] > max_w:
        text = text[:-1]
    return text + "…" if text else ""


def _draw_centered(draw, box: Tuple[int, int, int, int], text: str, font, fill=TEXT) -> None:
    x0, y0, x1, y1 = box
    text = _fit(draw, text, font, x1 - x0 - 8)
    w, h = _text_size(draw, text, font)
    draw.text((x0 + (x1 - x0 - w) / 2, y0 + (y1 - y0 - h) / 2), text, font=font, fill=fill)


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "، ".join(str(v) for v in value)
    return str(value)


def _column_edges(columns: Sequence[Tuple[str, str]], width: int) -> List[Tuple[int, int]]:
    # right-to-left: row number column on the right edge, then columns in order
    inner = width - 2 * MARGIN - NUM_COL_W
    weights = [WIDE_KEYS.get(key, 1.5) for key, _ in columns]
    total = sum(weights) or 1.0
    edges = []
    right = width - MARGIN - NUM_COL_W
    for w in weights:
        col_w = int(inner * w / total)
        edges.append((right - col_w, right))
        right -= col_w
    return edges


def render_page(
    page: Page,
    title: str,
    school: SchoolMeta,
    columns: Sequence[Tuple[str, str]],
    *,
    today: Optional[date] = None,
    font_path: Optional[str] = None,
) -> Image.Image:
    """
    One report page as an image:
      header   - school name, print date, title (same on every page)
      table    - rows numbered from page.starting_row_number + 1
      footer   - signatures on the last page, a "continued" marker otherwise
    """
    today = today or date.today()
    f_title = load_font(30, font_path)
    f_head = load_font(22, font_path)
    f_body = load_font(20, font_path)
    f_small = load_font(16, font_path)

    header_h = 150
    table_h = HEAD_ROW_H + ROW_H * len(page.rows)
    footer_h = 170 if page.is_last_page else 70
    height = MARGIN + header_h + table_h + footer_h + MARGIN
    width = RENDER_WIDTH

    img = Image.new("RGB", (width, height), WHITE)
    draw = ImageDraw.Draw(img)

    # --- header
    y = MARGIN
    if school.logo_path:
        with Image.open(school.logo_path) as logo:
            logo = logo.convert("RGBA")
            logo.thumbnail((LOGO_H * 2, LOGO_H))
            img.paste(logo, ((width - logo.width) // 2, y), logo)
    _draw_centered(draw, (width // 2, y, width - MARGIN, y + 36), school.school_name, f_head)
    _draw_centered(draw, (MARGIN, y, width // 2, y + 36), today.strftime("%Y-%m-%d"), f_small, MUTED)
    _draw_centered(draw, (MARGIN, y + LOGO_H + 2, width - MARGIN, y + LOGO_H + 38), title, f_title)
    y += header_h - 12
    draw.line((MARGIN, y, width - MARGIN, y), fill=TEXT, width=3)
    y += 12

    # --- table
    edges = _column_edges(columns, width)
    num_box = (width - MARGIN - NUM_COL_W, width - MARGIN)

    def row_boxes(top: int, bottom: int):
        yield (num_box[0], top, num_box[1], bottom)
        for x0, x1 in edges:
            yield (x0, top, x1, bottom)

    for box in row_boxes(y, y + HEAD_ROW_H):
        draw.rectangle(box, fill=HEAD_FILL, outline=GRID)
    labels = [ROW_NUMBER_LABEL] + [label for _, label in columns]
    for box, label in zip(row_boxes(y, y + HEAD_ROW_H), labels):
        _draw_centered(draw, box, label, f_head)
    y += HEAD_ROW_H

    for i, row in enumerate(page.rows):
        values = [str(page.starting_row_number + i + 1)] + [_format_cell(row.get(key)) for key, _ in columns]
        for box, value in zip(row_boxes(y, y + ROW_H), values):
            draw.rectangle(box, outline=GRID)
            _draw_centered(draw, box, value, f_body)
        y += ROW_H

    # --- footer
    y += 24
    if page.is_last_page:
        half = (width - 2 * MARGIN) // 2
        blocks = [
            ((width - MARGIN - half, width - MARGIN), SUPERVISOR_LABEL, school.supervisor_name),
            ((MARGIN, MARGIN + half), MANAGER_LABEL, school.manager_name),
        ]
        for (x0, x1), label, name in blocks:
            _draw_centered(draw, (x0, y, x1, y + 36), label, f_head)
            _draw_centered(draw, (x0, y + 84, x1, y + 120), name, f_body)
    else:
        _draw_centered(draw, (MARGIN, y, width - MARGIN, y + 32), f"{CONTINUED} ({page.index + 2})", f_small, MUTED)

    logger.debug("Rendered page %d: %d rows, %dx%d px", page.index, len(page.rows), width, height)
    return img


def rasterize(image: Image.Image, width: int = RASTER_WIDTH, quality: int = 92) -> bytes:
    """JPEG of the page scaled to a fixed width; height follows the aspect ratio."""
    buf = BytesIO()
    try:
        img = image.convert("RGB")
        if img.width != width:
            height = max(1, round(img.height * width / img.width))
            img = img.resize((width, height), Image.Resampling.LANCZOS)
        img.save(buf, format="JPEG", quality=quality)
    except (OSError, ValueError) as e:
        raise RasterizationFailure(f"Page image could not be encoded: {e}") from e
    return buf.getvalue()
