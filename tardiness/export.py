from __future__ import annotations
import re
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from .config import PDF_PAGE_WIDTH_MM, RASTER_WIDTH
from .errors import AssemblyFailure, RasterizationFailure
from .models import Page, SchoolMeta
from .render import rasterize, render_page
from .utils import exports_dir, share_cache_dir

logger = logging.getLogger(__name__)

# page -> JPEG bytes
Rasterizer = Callable[[Page], bytes]
# (file path, title, message) -> None
ShareHandler = Callable[[Path, str, str], None]

_UNSAFE_NAME_RE = re.compile(r'[\\/:*?"<>|]+')


def make_rasterizer(
    title: str,
    school: SchoolMeta,
    columns: Sequence[Tuple[str, str]],
    *,
    width: int = RASTER_WIDTH,
    font_path: Optional[str] = None,
    today: Optional[date] = None,
) -> Rasterizer:
    def _rasterize(page: Page) -> bytes:
        img = render_page(page, title, school, columns, today=today, font_path=font_path)
        return rasterize(img, width=width)
    return _rasterize


def _run_one(rasterizer: Rasterizer, page: Page) -> bytes:
    try:
        return rasterizer(page)
    except RasterizationFailure as e:
        if e.page_index is None:
            e.page_index = page.index
        raise
    except Exception as e:
        raise RasterizationFailure(f"Page {page.index + 1} could not be rendered: {e}", page_index=page.index) from e


def rasterize_pages(pages: Sequence[Page], rasterizer: Rasterizer, max_workers: int = 1) -> List[bytes]:
    """
    Images in page order. With max_workers > 1 pages are rendered in a thread
    pool; the first failing page (in page order) aborts the whole run.
    """
    if max_workers <= 1 or len(pages) <= 1:
        return [_run_one(rasterizer, p) for p in pages]

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(_run_one, rasterizer, p) for p in pages]
        try:
            return [f.result() for f in futures]
        except RasterizationFailure:
            for f in futures:
                f.cancel()
            raise


def assemble_pdf(images: Sequence[bytes], page_width_mm: float = PDF_PAGE_WIDTH_MM) -> bytes:
    """
    One PDF page per image, in order. Every page is page_width_mm wide and as
    tall as the image scaled to that width.
    """
    if not images:
        raise AssemblyFailure("No page images to assemble")

    page_w = page_width_mm * mm
    buf = BytesIO()
    try:
        pdf = canvas.Canvas(buf)
        for data in images:
            reader = ImageReader(BytesIO(data))
            img_w, img_h = reader.getSize()
            page_h = img_h * page_w / img_w
            pdf.setPageSize((page_w, page_h))
            pdf.drawImage(reader, 0, 0, width=page_w, height=page_h)
            pdf.showPage()
        pdf.save()
    except Exception as e:
        raise AssemblyFailure(f"PDF could not be built: {e}") from e
    return buf.getvalue()


def export_pdf(
    pages: Sequence[Page],
    title: str,
    school: SchoolMeta,
    columns: Sequence[Tuple[str, str]],
    *,
    rasterizer: Optional[Rasterizer] = None,
    max_workers: int = 1,
    width: int = RASTER_WIDTH,
    font_path: Optional[str] = None,
    today: Optional[date] = None,
) -> bytes:
    """
    Renders, rasterizes and assembles every page into one PDF.
    All or nothing: RasterizationFailure / AssemblyFailure leave no document.
    """
    if not pages:
        raise ValueError("Nothing to export: the report has no pages")

    rasterizer = rasterizer or make_rasterizer(title, school, columns, width=width, font_path=font_path, today=today)
    started = time.perf_counter()
    images = rasterize_pages(pages, rasterizer, max_workers=max_workers)
    document = assemble_pdf(images)
    logger.info("Exported %r: %d pages, %d bytes in %.2fs",
                title, len(pages), len(document), time.perf_counter() - started)
    return document
# =========================

# Delivery: direct download vs platform share
# =========================
def safe_file_name(name: str) -> str:
    name = _UNSAFE_NAME_RE.sub("-", name or "").strip()
    return name or "report"


def deliver(
    document: bytes,
    file_name: str,
    *,
    share_supported: bool,
    share_handler: Optional[ShareHandler] = None,
    download_dir: Optional[Path] = None,
    cache_dir: Optional[Path] = None,
) -> Path:
    """
    share_supported=False -> <download_dir>/<file_name>.pdf
    share_supported=True  -> <cache_dir>/<file_name>_<epoch ms>.pdf, then share_handler
    """
    base = safe_file_name(file_name)

    if not share_supported:
        target_dir = download_dir or exports_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / f"{base}.pdf"
        path.write_bytes(document)
        logger.info("Report saved to %s", path)
        return path

    if share_handler is None:
        raise ValueError("share_supported is set but no share_handler was given")

    target_dir = cache_dir or share_cache_dir()
    target_dir.mkdir(parents=True, exist_ok=True)
    stamped = re.sub(r"\s", "_", base)
    path = target_dir / f"{stamped}_{int(time.time() * 1000)}.pdf"
    path.write_bytes(document)
    share_handler(path, file_name, f"مرفق تقرير: {file_name}")
    logger.info("Report shared from %s", path)
    return path
