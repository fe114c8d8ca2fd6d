"""
Export Reports module for the CRI Assessment Platform.

Serialises report rows to CSV text, a tabular PDF document and an Excel
workbook.  All formats use the canonical report columns, in report-row order.
"""
from __future__ import annotations
import io
from datetime import datetime
from typing import List, Optional

# PDF generation
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT

# Excel generation
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side

from cri_assessment.report_builder import (
    REPORT_COLUMNS,
    REPORT_SCHEMA_VERSION,
    ReportRow,
    ReportSummary,
    summarize_report,
)

CSV_HEADER = "Diagnostic ID,Title,Response,Confidence,Score,Evidence"

CSV_FILENAME = "assessment_report.csv"
PDF_FILENAME = "assessment_report.pdf"
EXCEL_FILENAME = "assessment_report.xlsx"

DEFAULT_TITLE = "CREAM Assessment Report"

CONFIDENCE_FILLS = {
    "High": "E6FFE6",
    "Medium": "FFF2E6",
    "Low": "FFE6E6",
}


# ID, Title, Response, Evidence hold user or catalog text
FREE_TEXT_COLUMNS = frozenset({0, 1, 2, 5})


def _row_values(row: ReportRow) -> list:
    return [row.id, row.title, row.response, row.confidence, row.score, row.evidence]


def _pdf_table_data(rows: List[ReportRow]) -> List[list]:
    """Header plus one line per report row, in report-row order."""
    table_data = [list(REPORT_COLUMNS)]
    for row in rows:
        values = _row_values(row)
        values[4] = str(row.score)
        table_data.append(values)
    return table_data


def _excel_text(value: str) -> str:
    # Control characters (pasted vertical tabs, form feeds) are not valid in XLSX
    return ILLEGAL_CHARACTERS_RE.sub("", value)


def to_csv(rows: List[ReportRow]) -> str:
    """Render rows as CSV text.

    Fields are joined with bare commas and lines with "\\n"; nothing is
    quoted, so a field containing a comma or newline breaks the row.
    """
    lines = [CSV_HEADER]
    lines.extend(",".join(str(v) for v in _row_values(row)) for row in rows)
    return "\n".join(lines)


class AssessmentReportGenerator:
    """Generates assessment reports in PDF and Excel formats."""

    def __init__(self, title: str = DEFAULT_TITLE):
        self.title = title
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Set up custom styles for PDF generation."""
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=12,
            alignment=TA_LEFT,
            textColor=colors.HexColor('#003366')
        ))

        self.styles.add(ParagraphStyle(
            name='ReportMeta',
            parent=self.styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#4b5563')
        ))

        self.styles.add(ParagraphStyle(
            name='CellText',
            parent=self.styles['Normal'],
            fontSize=8,
            leading=10
        ))

    def generate_pdf(self, rows: List[ReportRow]) -> bytes:
        """Generate the report table as a paginated PDF."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=36, leftMargin=36,
            topMargin=36, bottomMargin=36,
            title=self.title,
        )

        story = [
            Paragraph(_escape(self.title), self.styles['ReportTitle']),
            Paragraph(
                f"Generated {datetime.now().strftime('%Y-%m-%d %H:%M')} "
                f"&middot; report schema v{REPORT_SCHEMA_VERSION}",
                self.styles['ReportMeta']
            ),
            Spacer(1, 12),
        ]

        # Wrap free-text cells so long responses flow within the column
        cell = self.styles['CellText']
        header, *body = _pdf_table_data(rows)
        table_data = [header]
        for values in body:
            table_data.append([
                Paragraph(_escape(v), cell) if col in FREE_TEXT_COLUMNS else v
                for col, v in enumerate(values)
            ])

        table = Table(
            table_data,
            colWidths=[1.0*inch, 2.2*inch, 3.4*inch, 0.9*inch, 0.6*inch, 2.4*inch],
            repeatRows=1,
        )
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#003366')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f7f8fc')]),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#bdc3c7'))
        ]))
        story.append(table)

        doc.build(story)
        buffer.seek(0)
        return buffer.getvalue()

    def generate_excel(self, rows: List[ReportRow], summary: Optional[ReportSummary] = None) -> bytes:
        """Generate a workbook with the report rows and a summary sheet."""
        summary = summary or summarize_report(rows)
        buffer = io.BytesIO()
        wb = Workbook()
        wb.remove(wb.active)

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="003366", end_color="003366", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")
        data_alignment = Alignment(horizontal="left", vertical="top", wrap_text=True)
        border = Border(left=Side(style='thin'), right=Side(style='thin'),
                        top=Side(style='thin'), bottom=Side(style='thin'))

        ws = wb.create_sheet("Assessment")
        for col, header in enumerate(REPORT_COLUMNS, 1):
            c = ws.cell(row=1, column=col, value=header)
            c.font = header_font
            c.fill = header_fill
            c.alignment = header_alignment
            c.border = border

        for row_idx, row in enumerate(rows, 2):
            for col, value in enumerate(_row_values(row), 1):
                if isinstance(value, str):
                    value = _excel_text(value)
                c = ws.cell(row=row_idx, column=col, value=value)
                if col - 1 in FREE_TEXT_COLUMNS:
                    # Keep text like "=HYPERLINK(...)" from becoming a formula
                    c.data_type = "s"
                c.alignment = data_alignment
                c.border = border
                # Confidence column
                if col == 4 and value in CONFIDENCE_FILLS:
                    c.fill = PatternFill(start_color=CONFIDENCE_FILLS[value],
                                         end_color=CONFIDENCE_FILLS[value], fill_type="solid")

        for column in ws.columns:
            max_length = max(len(str(c.value)) if c.value is not None else 0 for c in column)
            ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 60)

        ws_summary = wb.create_sheet("Summary")
        ws_summary.cell(row=1, column=1, value=self.title).font = Font(bold=True, size=14)
        summary_rows = [
            ("Diagnostics", summary.total),
            ("Answered", summary.answered),
            ("With evidence", summary.with_evidence),
            ("Total score", summary.total_score),
            ("Maximum score", summary.max_score),
            ("Average score", round(summary.average_score, 2)),
        ]
        summary_rows.extend((f"{level} confidence", count)
                            for level, count in summary.confidence_counts.items())
        summary_rows.append(("Report schema", REPORT_SCHEMA_VERSION))
        for row_idx, (label, value) in enumerate(summary_rows, 3):
            ws_summary.cell(row=row_idx, column=1, value=label).border = border
            ws_summary.cell(row=row_idx, column=2, value=value).border = border
        ws_summary.column_dimensions["A"].width = 22

        wb.save(buffer)
        buffer.seek(0)
        return buffer.getvalue()


def _escape(text: str) -> str:
    # Paragraph parses a small XML markup language
    return (str(text).replace("&", "&amp;")
            .replace("<", "&lt;").replace(">", "&gt;"))


# Convenience functions for easy integration
def to_pdf(rows: List[ReportRow], title: str = DEFAULT_TITLE) -> bytes:
    """Export report rows as PDF."""
    return AssessmentReportGenerator(title).generate_pdf(rows)


def to_excel(rows: List[ReportRow], title: str = DEFAULT_TITLE) -> bytes:
    """Export report rows as an Excel workbook."""
    return AssessmentReportGenerator(title).generate_excel(rows)
