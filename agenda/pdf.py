import io
import logging
from datetime import datetime

from fpdf import FPDF, XPos, YPos
from fpdf.fonts import FontFace
from PIL import Image

from .constants import DEFAULT_LOCALE, FIELD_LABELS, PDF_MAX_PHOTOS, TEXT_FIELDS
from .query import full_text
from .utils import format_full_date, trim_one_line

logger = logging.getLogger("Agenda")

MARGIN_X = 40
MARGIN_TOP = 50
MARGIN_BOTTOM = 60

THUMB_W = 160
THUMB_H = 110
THUMB_GAP_X = 10
THUMB_GAP_Y = 12
THUMBS_PER_ROW = 3

HEADER_FILL = (13, 59, 63)


def _latin1(text):
    # Core PDF fonts are latin-1 only; anything else (emoji, CJK) becomes "?".
    return str(text or "").encode("latin-1", "replace").decode("latin-1")


class _AgendaPDF(FPDF):
    def __init__(self, footer_text=""):
        super().__init__(orientation="portrait", unit="pt", format="A4")
        self.footer_text = footer_text
        self.set_margins(MARGIN_X, MARGIN_TOP, MARGIN_X)
        self.set_auto_page_break(auto=True, margin=MARGIN_BOTTOM)

    def footer(self):
        if not self.footer_text:
            return
        self.set_y(-40)
        self.set_font("helvetica", size=9)
        self.cell(0, 12, _latin1(self.footer_text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def heading(self, text, size=16):
        self.set_font("helvetica", style="B", size=size)
        self.multi_cell(0, size + 4, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def paragraph(self, text, size=10, line_height=12):
        self.set_font("helvetica", size=size)
        self.multi_cell(0, line_height, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def day_pdf_filename(day_date):
    return f"agenda-{day_date}.pdf"


def range_pdf_filename(from_date, to_date):
    return f"agenda-{from_date}_to_{to_date}.pdf"


def export_day_pdf(record, locale=DEFAULT_LOCALE):
    """One day: title, non-empty fields in fixed order, then up to 12 thumbnails."""
    pdf = _AgendaPDF()
    pdf.add_page()

    pdf.heading(format_full_date(record.date, locale), size=16)
    pdf.paragraph(f"Date: {record.date}", size=11, line_height=14)
    pdf.ln(10)

    for name in TEXT_FIELDS:
        value = getattr(record, name)
        if not value.strip():
            continue
        pdf.heading(FIELD_LABELS[name], size=12)
        pdf.paragraph(value)
        pdf.ln(12)

    photos = [p for p in record.photos if _decodable(p)][:PDF_MAX_PHOTOS]
    if photos:
        _photo_grid(pdf, photos)

    return bytes(pdf.output())


def _decodable(photo):
    try:
        with Image.open(io.BytesIO(photo.blob)) as img:
            img.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("skipping undecodable photo %s in pdf: %s", photo.id, exc)
        return False
    return True


def _photo_grid(pdf, photos):
    limit_y = pdf.h - MARGIN_BOTTOM
    if pdf.get_y() + 14 + THUMB_H > limit_y:
        pdf.add_page()
    pdf.heading("Photos", size=12)

    y = pdf.get_y() + 2
    for i, photo in enumerate(photos):
        col = i % THUMBS_PER_ROW
        if col == 0 and i > 0:
            y += THUMB_H + THUMB_GAP_Y
        if col == 0 and y + THUMB_H > limit_y:
            pdf.add_page()
            y = pdf.get_y()
        x = MARGIN_X + col * (THUMB_W + THUMB_GAP_X)
        pdf.image(io.BytesIO(photo.blob), x=x, y=y, w=THUMB_W, h=THUMB_H)
    pdf.set_y(y + THUMB_H + THUMB_GAP_Y)


def export_range_pdf(records, from_date, to_date, title=None, locale=DEFAULT_LOCALE, generated_at=None):
    """Summary table (one row per day) followed by a detailed text appendix."""
    days = sorted(records, key=lambda d: d.date)
    generated_at = generated_at or datetime.now()

    pdf = _AgendaPDF(footer_text=f"Period: {from_date} to {to_date}")
    pdf.add_page()
    pdf.heading(title or f"Entries ({from_date} to {to_date})", size=16)
    pdf.paragraph(f"Generated at: {generated_at.strftime('%Y-%m-%d %H:%M')}", size=10)
    pdf.ln(8)

    pdf.set_font("helvetica", size=9)
    with pdf.table(
        col_widths=(90, 390, 50),
        text_align=("LEFT", "LEFT", "CENTER"),
        headings_style=FontFace(emphasis="BOLD", color=255, fill_color=HEADER_FILL),
        padding=5,
    ) as table:
        head = table.row()
        for label in ("Date", "Summary", "Photos"):
            head.cell(label)
        for d in days:
            row = table.row()
            row.cell(d.date)
            row.cell(_latin1(trim_one_line(d.notes)))
            row.cell(str(len(d.photos)))

    detailed = [(d, full_text(d)) for d in days]
    detailed = [(d, text) for d, text in detailed if text]
    if detailed:
        pdf.add_page()
        for d, text in detailed:
            pdf.heading(format_full_date(d.date, locale), size=12)
            pdf.paragraph(text)
            pdf.ln(14)

    logger.info("range pdf %s..%s: %d day(s), %d with text", from_date, to_date, len(days), len(detailed))
    return bytes(pdf.output())
