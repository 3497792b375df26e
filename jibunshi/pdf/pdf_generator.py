"""
pdf_generator.py — Jibunshi autobiography booklet generator.

Builds an A4 PDF with reportlab PLATYPUS.
Output is a BytesIO buffer; the route decides where it is written.

Entry point:
    generate_booklet(content) -> BytesIO

CRITICAL: buffer.seek(0) is called after doc.build(story) — reportlab leaves
the buffer position at the end after writing.

Booklet sections, in order:
  1. Cover (title, name, age, generation date)
  2. Narrative (biography text, paragraphs split on blank lines)
  3. Photo pages (2 x 2 grid, at most 4 photos per page)
  4. Chronology table (auto-generated entries by year / month, text cut at 150 chars)

Text is Japanese: every style uses the built-in CID font HeiseiKakuGo-W5,
so no TTF file has to ship with the application.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor, black
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import (
    Image,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FONT_NAME = "HeiseiKakuGo-W5"
pdfmetrics.registerFont(UnicodeCIDFont(FONT_NAME))

CREAM = HexColor("#FBF6EC")       # Cover band / table header
GREY_LIGHT = HexColor("#F2F2F2")  # Alternating chronology rows

PHOTOS_PER_PAGE = 4
PHOTO_BOX_W = 80 * mm
PHOTO_BOX_H = 95 * mm
CHRONOLOGY_TEXT_LIMIT = 150


# ---------------------------------------------------------------------------
# Input contract
# ---------------------------------------------------------------------------

@dataclass
class BookletPhoto:
    path: str                 # local file path, already checked to exist
    caption: Optional[str] = None


@dataclass
class ChronologyRow:
    year: Optional[int]
    month: Optional[int]
    title: str
    text: str


@dataclass
class BookletContent:
    name: str
    age: Optional[int]
    narrative: str
    photos: list[BookletPhoto] = field(default_factory=list)
    chronology: list[ChronologyRow] = field(default_factory=list)
    generated_on: datetime.date = field(default_factory=datetime.date.today)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def truncate(text: str, limit: int = CHRONOLOGY_TEXT_LIMIT) -> str:
    text = (text or "").strip()
    return text if len(text) <= limit else text[:limit] + "…"


def _para_text(text: str) -> str:
    """Escape XML specials and keep single line breaks."""
    return escape(text).replace("\n", "<br/>")


def _styles() -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("jb_title", parent=base["Title"], fontName=FONT_NAME, fontSize=28, leading=36),
        "subtitle": ParagraphStyle("jb_subtitle", parent=base["Normal"], fontName=FONT_NAME, fontSize=16, leading=24, alignment=1),
        "heading": ParagraphStyle("jb_heading", parent=base["Heading2"], fontName=FONT_NAME, fontSize=16, leading=22),
        "body": ParagraphStyle("jb_body", parent=base["Normal"], fontName=FONT_NAME, fontSize=11, leading=19, firstLineIndent=11),
        "caption": ParagraphStyle("jb_caption", parent=base["Normal"], fontName=FONT_NAME, fontSize=8, leading=11, alignment=1),
        "cell": ParagraphStyle("jb_cell", parent=base["Normal"], fontName=FONT_NAME, fontSize=8, leading=11),
    }


def _date_label(year: Optional[int], month: Optional[int]) -> str:
    if year is None:
        return "—"
    return f"{year}年{month}月" if month else f"{year}年"


# ---------------------------------------------------------------------------
# Private section builders
# ---------------------------------------------------------------------------

def _build_cover(content: BookletContent, styles: dict) -> list:
    age_line = f"{content.age}歳" if content.age is not None else ""
    band = Table(
        [[Paragraph("わたしの自分史", styles["title"])]],
        colWidths=[170 * mm],
    )
    band.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), CREAM),
        ("TOPPADDING", (0, 0), (-1, -1), 18),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 18),
    ]))
    return [
        Spacer(1, 60 * mm),
        band,
        Spacer(1, 20 * mm),
        Paragraph(_para_text(content.name), styles["subtitle"]),
        Spacer(1, 4 * mm),
        Paragraph(age_line, styles["subtitle"]),
        Spacer(1, 30 * mm),
        Paragraph(content.generated_on.strftime("%Y年%m月%d日 作成"), styles["subtitle"]),
        PageBreak(),
    ]


def _build_narrative(content: BookletContent, styles: dict) -> list:
    flowables = [Paragraph("人生の物語", styles["heading"]), Spacer(1, 4 * mm)]
    for block in content.narrative.split("\n\n"):
        if block.strip():
            flowables.append(Paragraph(_para_text(block.strip()), styles["body"]))
            flowables.append(Spacer(1, 3 * mm))
    flowables.append(PageBreak())
    return flowables


def _scaled_image(photo: BookletPhoto) -> Image:
    width, height = ImageReader(photo.path).getSize()
    scale = min(PHOTO_BOX_W / width, (PHOTO_BOX_H - 12 * mm) / height)
    return Image(photo.path, width=width * scale, height=height * scale)


def _build_photo_pages(photos: list[BookletPhoto], styles: dict) -> list:
    """2 x 2 grid per page; a trailing partial page keeps its empty cells."""
    flowables = []
    for start in range(0, len(photos), PHOTOS_PER_PAGE):
        page = photos[start:start + PHOTOS_PER_PAGE]
        cells = [
            [_scaled_image(p), Paragraph(_para_text(p.caption or ""), styles["caption"])]
            for p in page
        ]
        while len(cells) < PHOTOS_PER_PAGE:
            cells.append("")
        grid = Table(
            [[cells[0], cells[1]], [cells[2], cells[3]]],
            colWidths=[PHOTO_BOX_W + 5 * mm] * 2,
            rowHeights=[PHOTO_BOX_H + 5 * mm] * 2,
        )
        grid.setStyle(TableStyle([
            ("ALIGN", (0, 0), (-1, -1), "CENTER"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]))
        flowables.append(Paragraph("思い出の写真", styles["heading"]))
        flowables.append(Spacer(1, 4 * mm))
        flowables.append(grid)
        flowables.append(PageBreak())
    return flowables


def _build_chronology(rows: list[ChronologyRow], styles: dict) -> list:
    header = ["年月", "出来事", "内容"]
    data = [[Paragraph(h, styles["cell"]) for h in header]]
    for row in rows:
        data.append([
            Paragraph(_date_label(row.year, row.month), styles["cell"]),
            Paragraph(_para_text(row.title), styles["cell"]),
            Paragraph(_para_text(truncate(row.text)), styles["cell"]),
        ])

    style_cmds = [
        ("BACKGROUND", (0, 0), (-1, 0), CREAM),
        ("GRID", (0, 0), (-1, -1), 0.5, black),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]
    for i in range(2, len(data), 2):
        style_cmds.append(("BACKGROUND", (0, i), (-1, i), GREY_LIGHT))

    t = Table(data, colWidths=[25 * mm, 45 * mm, 100 * mm], repeatRows=1)
    t.setStyle(TableStyle(style_cmds))
    return [Paragraph("年表", styles["heading"]), Spacer(1, 4 * mm), t]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def generate_booklet(content: BookletContent) -> BytesIO:
    """
    Render the booklet. Sections with no data (no photos, no chronology rows)
    are left out rather than printed empty.

    Returns:
        BytesIO buffer at position 0.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title="わたしの自分史",
        author=content.name,
    )
    styles = _styles()

    story = _build_cover(content, styles)
    story += _build_narrative(content, styles)
    if content.photos:
        story += _build_photo_pages(content.photos, styles)
    if content.chronology:
        story += _build_chronology(content.chronology, styles)

    # A trailing PageBreak would emit a blank last page
    while story and isinstance(story[-1], PageBreak):
        story.pop()

    doc.build(story)
    buffer.seek(0)
    logger.info(
        "Booklet rendered photos=%d chronology_rows=%d bytes=%d",
        len(content.photos),
        len(content.chronology),
        buffer.getbuffer().nbytes,
    )
    return buffer
