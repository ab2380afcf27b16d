"""
PDF rendering of transcripts
"""

import os
import re
from datetime import datetime
from typing import Optional
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from app.core.logging import get_logger

logger = get_logger(__name__)

# Core PDF fonts only cover printable ASCII and Latin-1
_UNSUPPORTED_CHARS = re.compile(r"[^\x20-\x7E\xA0-\xFF]")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

FONT = "Helvetica"
BODY_FONT_SIZE = 11
LINE_HEIGHT = BODY_FONT_SIZE * 1.5 * 0.3528  # points to mm


def sanitize_text(text: str) -> str:
    """Replace characters the core fonts cannot render with '?'."""
    return _UNSUPPORTED_CHARS.sub("?", text)


def attachment_filename(original_name: str) -> str:
    """Download name for the PDF generated from `original_name`."""
    stem = os.path.splitext(os.path.basename(original_name or ""))[0]
    stem = _UNSAFE_FILENAME_CHARS.sub("_", stem).strip("._") or "audio"
    return f"{stem}_transcript.pdf"


class TranscriptPDF(FPDF):
    """A4 document with page numbering in the footer"""

    def footer(self):
        self.set_y(-18)
        self.set_font(FONT, size=9)
        self.set_text_color(153, 153, 153)
        self.cell(0, 5, f"Page {self.page_no()} of {{nb}}", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_font(FONT, size=8)
        self.set_text_color(179, 179, 179)
        self.cell(0, 4, "Generated with OpenAI Whisper", align="C")


def render_transcript_pdf(filename: str, transcript: str, generated_at: Optional[datetime] = None) -> bytes:
    generated_at = generated_at or datetime.now()
    pdf = TranscriptPDF(format="A4")
    pdf.set_margins(18, 18, 18)
    pdf.set_auto_page_break(auto=True, margin=25)
    pdf.set_title("Audio Transcript")
    pdf.set_creator("Audio Transcript Service")
    pdf.add_page()

    pdf.set_font(FONT, style="B", size=20)
    pdf.set_text_color(46, 51, 64)
    pdf.cell(0, 12, "Audio Transcript", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.set_font(FONT, size=14)
    pdf.set_text_color(94, 130, 171)
    pdf.multi_cell(0, 8, sanitize_text(filename), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.set_font(FONT, size=10)
    pdf.set_text_color(102, 102, 102)
    pdf.cell(0, 8, f"Generated on: {generated_at.strftime('%B %d, %Y')}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    pdf.ln(4)
    pdf.set_draw_color(204, 204, 204)
    pdf.line(pdf.l_margin, pdf.get_y(), pdf.w - pdf.r_margin, pdf.get_y())
    pdf.ln(8)

    pdf.set_font(FONT, size=BODY_FONT_SIZE)
    pdf.set_text_color(51, 51, 51)
    paragraphs = [line for line in transcript.split("\n") if line.strip()]
    for paragraph in paragraphs:
        pdf.multi_cell(0, LINE_HEIGHT, sanitize_text(paragraph.strip()), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(LINE_HEIGHT * 0.5)

    logger.info(f"Rendered transcript PDF: {pdf.page_no()} pages, {len(paragraphs)} paragraphs")
    return bytes(pdf.output())
