"""
Transformer Oil Diagnostic PDF Report
=====================================
Renders DGA and breakdown-voltage report documents (as produced by
``report_generator``) into PDF bytes with ReportLab.

Sections:
- Title and sample header (transformer id, sampling date, ...)
- Gas concentrations (optional)
- Duval triangle results and overall severity
- CO analysis
- Maintenance recommendations (optional)
"""

import io
import logging
from datetime import datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

PAGE_MARGIN_INCHES = 0.75
SECTION_SPACER_INCHES = 0.25

TABLE_COL_WIDTH_LABEL = 2.5 * inch
TABLE_COL_WIDTH_VALUE = 4.0 * inch

HEADER_LABELS = [
    ("idTrafo", "Transformer ID"),
    ("samplingDate", "Sampling Date"),
    ("serialNo", "Serial No."),
    ("powerRating", "Power Rating"),
    ("voltageRatio", "Voltage Ratio"),
    ("category", "Category"),
    ("manufacture", "Manufacturer"),
    ("oilBrand", "Oil Brand"),
    ("weightVolumeOil", "Oil Weight / Volume"),
    ("year", "Year"),
    ("temperature", "Temperature"),
    ("samplingPoint", "Sampling Point"),
]

SEVERITY_COLORS = {
    "low": "#10B981",
    "medium": "#F59E0B",
    "high": "#F97316",
    "critical": "#DC2626",
    "good": "#10B981",
    "fair": "#F59E0B",
    "poor": "#DC2626",
}


class DiagnosticReportPDF:
    """Builds PDF reports for DGA and BDV analyses."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._create_custom_styles()

    def _create_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=20,
            textColor=colors.HexColor('#1f77b4'),
            spaceAfter=18,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold'
        ))
        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Heading2'],
            fontSize=14,
            textColor=colors.HexColor('#1f77b4'),
            spaceAfter=8,
            spaceBefore=8,
            fontName='Helvetica-Bold'
        ))
        self.styles.add(ParagraphStyle(
            name='Recommendation',
            parent=self.styles['Normal'],
            fontSize=10,
            leftIndent=20,
            spaceAfter=4,
            bulletIndent=10,
        ))

    # =========================
    # Public builders
    # =========================
    def build_dga(self, report: Dict, include_gas: bool = True,
                  include_recommendations: bool = True) -> bytes:
        result = report.get("result", {})
        story = []
        story.append(Paragraph("DISSOLVED GAS ANALYSIS REPORT", self.styles['ReportTitle']))
        story.extend(self._header_section(report))

        if include_gas:
            story.extend(self._gas_section(report.get("gases", [])))

        story.extend(self._triangle_section(result))

        co = result.get("coAnalysis")
        if co:
            story.extend(self._co_section(co))

        if include_recommendations:
            story.extend(self._recommendation_section(result.get("recommendations", [])))

        return self._render(story)

    def build_bdv(self, report: Dict) -> bytes:
        result = report.get("result", {})
        story = []
        story.append(Paragraph("BREAKDOWN VOLTAGE TEST REPORT", self.styles['ReportTitle']))
        story.extend(self._header_section(report))

        story.append(Paragraph("Dielectric Strength Readings", self.styles['SectionHeader']))
        rows = [["Reading", "kV"]]
        for i, value in enumerate(result.get("dielectricStrengths", [])):
            rows.append([f"#{i + 1}", f"{value:.2f}"])
        rows.append(["Average", f"{result.get('average', 0):.2f}"])
        story.append(self._table(rows, header=True))
        story.append(Spacer(1, SECTION_SPACER_INCHES * inch))

        verdict = result.get("result", "poor")
        thresholds = result.get("thresholds") or {}
        story.append(Paragraph("Result", self.styles['SectionHeader']))
        summary = [
            ["Transformer Class", result.get("transformerType", "")],
            ["Good Threshold", f"> {thresholds['good']:g} kV" if thresholds else "-"],
            ["Fair Threshold", f">= {thresholds['fair']:g} kV" if thresholds else "-"],
            ["Result", verdict.upper()],
        ]
        story.append(self._table(summary, highlight=verdict))
        story.append(Spacer(1, SECTION_SPACER_INCHES * inch))
        story.append(Paragraph(escape(result.get("recommendation", "")), self.styles['Normal']))

        return self._render(story)

    # =========================
    # Sections
    # =========================
    def _header_section(self, report: Dict) -> List:
        header = report.get("header", {})
        rows = [["Report Date:", datetime.now().strftime('%Y-%m-%d %H:%M:%S')]]
        for key, label in HEADER_LABELS:
            value = header.get(key)
            if value:
                rows.append([f"{label}:", value])
        return [self._table(rows), Spacer(1, SECTION_SPACER_INCHES * inch)]

    def _gas_section(self, gases: List[Dict]) -> List:
        content = [Paragraph("Gas Concentrations", self.styles['SectionHeader'])]
        rows = [["Gas", "Value"]]
        for gas in gases:
            unit = f" {gas['unit']}" if gas.get("unit") else ""
            rows.append([gas["name"], f"{gas['value']:g}{unit}"])
        if len(rows) == 1:
            rows.append(["-", "No gas data"])
        content.append(self._table(rows, header=True))
        content.append(Spacer(1, SECTION_SPACER_INCHES * inch))
        return content

    def _triangle_section(self, result: Dict) -> List:
        content = [Paragraph("Duval Triangle Results", self.styles['SectionHeader'])]
        rows = [["Triangle", "Fault", "Confidence"]]
        for key, label in (("triangle1", "Triangle 1"), ("triangle4", "Triangle 4"),
                           ("triangle5", "Triangle 5")):
            item = result.get(key)
            if item:
                rows.append([label, item["faultType"], f"{item['confidence'] * 100:.0f}%"])
        if len(rows) == 1:
            rows.append(["-", "No fault detected", "-"])
        content.append(self._table(rows, header=True))
        content.append(Spacer(1, SECTION_SPACER_INCHES * inch))

        severity = result.get("severity", "low")
        content.append(self._table([["Overall Severity", severity.upper()]], highlight=severity))
        content.append(Spacer(1, 0.1 * inch))
        content.append(Paragraph(escape(result.get("overallRecommendation", "")), self.styles['Normal']))
        content.append(Spacer(1, SECTION_SPACER_INCHES * inch))
        return content

    def _co_section(self, co: Dict) -> List:
        content = [Paragraph("Carbon Monoxide Analysis", self.styles['SectionHeader'])]
        rows = [
            ["CO Level", f"{co['coLevel']:g} ppm"],
            ["Severity", co["severity"]],
            ["Resampling Interval", co["resamplingInterval"]],
        ]
        content.append(self._table(rows))
        for line in co.get("recommendations", []):
            content.append(Paragraph(escape(line), self.styles['Recommendation'], bulletText='•'))
        content.append(Spacer(1, SECTION_SPACER_INCHES * inch))
        return content

    def _recommendation_section(self, recommendations: List[Dict]) -> List:
        content = [Paragraph("Maintenance Recommendations", self.styles['SectionHeader'])]
        for rec in recommendations:
            title = f"{rec['faultType']} - {rec['description']} (priority: {rec.get('priority', 'low')})"
            content.append(Paragraph(f"<b>{escape(title)}</b>", self.styles['Normal']))
            for action in rec.get("correctiveActions", []):
                content.append(Paragraph(escape(action), self.styles['Recommendation'], bulletText='•'))
            for action in rec.get("preventiveActions", []):
                content.append(Paragraph(escape(action), self.styles['Recommendation'], bulletText='-'))
            content.append(Spacer(1, 0.1 * inch))
        return content

    # =========================
    # Helpers
    # =========================
    def _table(self, rows, header: bool = False, highlight: Optional[str] = None) -> Table:
        widths = [TABLE_COL_WIDTH_LABEL, TABLE_COL_WIDTH_VALUE] if len(rows[0]) == 2 else None
        table = Table(rows, colWidths=widths)
        style = [
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#cccccc')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]
        if header:
            style.append(('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1f77b4')))
            style.append(('TEXTCOLOR', (0, 0), (-1, 0), colors.white))
            style.append(('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'))
        if highlight in SEVERITY_COLORS:
            style.append(('TEXTCOLOR', (-1, 0), (-1, -1), colors.HexColor(SEVERITY_COLORS[highlight])))
            style.append(('FONTNAME', (-1, 0), (-1, -1), 'Helvetica-Bold'))
        table.setStyle(TableStyle(style))
        return table

    def _render(self, story) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=PAGE_MARGIN_INCHES * inch,
            leftMargin=PAGE_MARGIN_INCHES * inch,
            topMargin=PAGE_MARGIN_INCHES * inch,
            bottomMargin=PAGE_MARGIN_INCHES * inch
        )
        doc.build(story)
        data = buffer.getvalue()
        logger.info("Rendered PDF report (%d bytes)", len(data))
        return data


def build_dga_pdf(report: Dict, include_gas: bool = True, include_recommendations: bool = True) -> bytes:
    return DiagnosticReportPDF().build_dga(report, include_gas, include_recommendations)


def build_bdv_pdf(report: Dict) -> bytes:
    return DiagnosticReportPDF().build_bdv(report)
