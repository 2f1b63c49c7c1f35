"""CSV and PDF encoders for report tables."""
import csv
import io

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from timeledger.services.report_service import ReportTable
from timeledger.utils.i18n import DEFAULT_LOCALE

PDF_MARGIN = 15 * mm
PDF_LINE_HEIGHT = 5 * mm

# Built-in Helvetica only covers Latin-1
PDF_LOCALES = {"en"}


def pdf_locale(locale: str) -> str:
    """Locale to label a PDF with; falls back to English where Helvetica lacks the glyphs."""
    return locale if locale in PDF_LOCALES else DEFAULT_LOCALE


def to_csv(table: ReportTable) -> bytes:
    """Header row plus data rows, UTF-8 with BOM so spreadsheets detect the encoding."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(table.header)
    writer.writerows(table.rows)
    return buffer.getvalue().encode("utf-8-sig")


def _fit(text: str, font: str, size: float, width: float, pdf: canvas.Canvas) -> str:
    """Truncate ``text`` with an ellipsis so it fits in ``width`` points."""
    if pdf.stringWidth(text, font, size) <= width:
        return text
    while text and pdf.stringWidth(text + "...", font, size) > width:
        text = text[:-1]
    return text + "..."


def to_pdf(table: ReportTable) -> bytes:
    """Title, summary lines and a plain table, paginated on A4."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    page_width, page_height = A4
    usable_width = page_width - 2 * PDF_MARGIN
    column_width = usable_width / max(len(table.header), 1)

    y = page_height - PDF_MARGIN

    def new_page():
        nonlocal y
        pdf.showPage()
        y = page_height - PDF_MARGIN

    def draw_row(cells, font):
        nonlocal y
        if y < PDF_MARGIN + PDF_LINE_HEIGHT:
            new_page()
        pdf.setFont(font, 8)
        for index, cell in enumerate(cells):
            text = _fit(str(cell), font, 8, column_width - 2 * mm, pdf)
            pdf.drawString(PDF_MARGIN + index * column_width, y, text)
        y -= PDF_LINE_HEIGHT

    pdf.setFont("Helvetica-Bold", 16)
    pdf.drawCentredString(page_width / 2, y, table.title)
    y -= 2 * PDF_LINE_HEIGHT

    pdf.setFont("Helvetica", 10)
    for label, value in table.summary:
        pdf.drawString(PDF_MARGIN, y, f"{label}: {value}")
        y -= PDF_LINE_HEIGHT
    if table.summary:
        y -= PDF_LINE_HEIGHT

    draw_row(table.header, "Helvetica-Bold")
    for row in table.rows:
        draw_row(row, "Helvetica")

    pdf.save()
    return buffer.getvalue()
