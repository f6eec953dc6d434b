import re
from datetime import date
from io import BytesIO

import pytest
from PIL import Image

from tardiness.errors import AssemblyFailure, RasterizationFailure
from tardiness.export import assemble_pdf, deliver, export_pdf, rasterize_pages
from tardiness.models import Page, SchoolMeta
from tardiness.paginate import paginate
from tardiness.render import rasterize, render_page

SCHOOL = SchoolMeta(school_name="مدرسة النور", manager_name="المدير", supervisor_name="المشرف")
COLUMNS = [("student_name", "الاسم"), ("grade", "الصف"), ("class_name", "الفصل")]


def _rows(n):
    return [{"student_name": f"Student {i}", "grade": "5", "class_name": "A"} for i in range(n)]


def _jpeg(w=120, h=80, color=(200, 10, 10)):
    buf = BytesIO()
    Image.new("RGB", (w, h), color).save(buf, format="JPEG")
    return buf.getvalue()


def _page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type\s*/Page\b", pdf))


def test_export_produces_one_pdf_page_per_report_page():
    pages = paginate(_rows(30), 22)

    pdf = export_pdf(pages, "Daily report", SCHOOL, COLUMNS, width=400, today=date(2024, 1, 1))

    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) == 2


def test_export_with_threads_keeps_order():
    pages = paginate(_rows(5), 1)
    seen = []

    def rasterizer(page):
        seen.append(page.index)
        return _jpeg(100, 50 + page.index * 10)

    images = rasterize_pages(pages, rasterizer, max_workers=3)

    assert [Image.open(BytesIO(b)).height for b in images] == [50, 60, 70, 80, 90]
    assert sorted(seen) == [0, 1, 2, 3, 4]


@pytest.mark.parametrize("workers", [1, 3])
def test_failing_page_fails_the_whole_export(workers):
    pages = paginate(_rows(3), 1)

    def rasterizer(page):
        if page.index == 1:
            raise RuntimeError("canvas lost")
        return _jpeg()

    with pytest.raises(RasterizationFailure) as exc:
        export_pdf(pages, "t", SCHOOL, COLUMNS, rasterizer=rasterizer, max_workers=workers)

    assert exc.value.page_index == 1
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_export_without_pages():
    with pytest.raises(ValueError):
        export_pdf([], "t", SCHOOL, COLUMNS)


def test_assemble_failures():
    with pytest.raises(AssemblyFailure):
        assemble_pdf([])
    with pytest.raises(AssemblyFailure):
        assemble_pdf([b"not an image"])


def test_assemble_keeps_image_ratio():
    pdf = assemble_pdf([_jpeg(200, 100), _jpeg(200, 400)])

    assert _page_count(pdf) == 2
    boxes = [tuple(float(v) for v in m) for m in re.findall(rb"/MediaBox\s*\[\s*0 0 ([\d.]+) ([\d.]+)\s*\]", pdf)]
    assert len(boxes) == 2
    for (w, h), ratio in zip(boxes, [0.5, 2.0]):
        assert w == pytest.approx(595.2756, abs=0.01)
        assert h / w == pytest.approx(ratio, rel=1e-3)


def test_last_page_has_signature_footer():
    rows = _rows(2)
    middle = render_page(Page(rows, 0, 0, False), "t", SCHOOL, COLUMNS, today=date(2024, 1, 1))
    last = render_page(Page(rows, 1, 2, True), "t", SCHOOL, COLUMNS, today=date(2024, 1, 1))

    assert middle.width == last.width
    assert last.height > middle.height


def test_rasterize_fixed_width():
    img = Image.new("RGB", (1000, 1500), "white")

    out = Image.open(BytesIO(rasterize(img, width=500)))

    assert out.format == "JPEG"
    assert out.size == (500, 750)


def test_deliver_download(tmp_path):
    path = deliver(b"%PDF-1.4", "تقرير: يناير", share_supported=False, download_dir=tmp_path)

    assert path.parent == tmp_path
    assert path.name == "تقرير- يناير.pdf"
    assert path.read_bytes() == b"%PDF-1.4"


def test_deliver_share(tmp_path):
    calls = []

    path = deliver(b"%PDF-1.4", "daily report", share_supported=True,
                   share_handler=lambda *args: calls.append(args), cache_dir=tmp_path)

    assert re.fullmatch(r"daily_report_\d+\.pdf", path.name)
    assert path.read_bytes() == b"%PDF-1.4"
    assert calls == [(path, "daily report", "مرفق تقرير: daily report")]


def test_deliver_share_needs_handler(tmp_path):
    with pytest.raises(ValueError):
        deliver(b"%PDF", "x", share_supported=True, cache_dir=tmp_path)


def test_encoding_failure_is_tagged_with_its_page():
    pages = paginate(_rows(3), 1)

    def rasterizer(page):
        if page.index == 2:
            raise RasterizationFailure("jpeg encoder failed")
        return _jpeg()

    with pytest.raises(RasterizationFailure) as exc:
        rasterize_pages(pages, rasterizer)

    assert exc.value.page_index == 2
