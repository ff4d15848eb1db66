"""
Plan PDF
Renders the unified plan view as a printable summary document
"""

import io
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from finalwishes.utils.data_checks import has_meaningful_data

logger = logging.getLogger(__name__)

INDIGO = HexColor('#4f46e5')
GRAY_700 = HexColor('#374151')
GRAY_500 = HexColor('#6b7280')
GRAY_200 = HexColor('#e5e7eb')

# Unified section -> heading, in table-of-contents order
PDF_SECTIONS = (
    ("personal_profile", "Personal Information"),
    ("family", "Family"),
    ("legacy", "Life Story & Legacy"),
    ("medical", "Medical & Care"),
    ("advance_directive", "Advance Directive"),
    ("contacts", "People to Notify"),
    ("funeral", "Funeral Wishes"),
    ("messages_to_loved_ones", "Messages to Loved Ones"),
    ("financial", "Financial Life"),
    ("insurance", "Insurance"),
    ("property", "Property & Valuables"),
    ("pets", "Pets"),
    ("online_accounts", "Online Accounts"),
    ("travel", "Travel & Away-From-Home"),
    ("notes", "Notes & Instructions"),
)

# Bookkeeping columns that never belong in the printed plan
HIDDEN_FIELDS = frozenset({"id", "plan_id", "created_at", "updated_at", "auto_injected", "ssn"})


def _label(key: str) -> str:
    return key.replace("_", " ").strip().capitalize()


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(v) for v in value if has_meaningful_data(v))
    return escape(str(value))


class PlanPdfGenerator:
    """Builds the plan PDF from unified plan data"""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='PlanTitle',
            parent=self.styles['Title'],
            fontSize=24,
            textColor=INDIGO,
            spaceAfter=12,
            alignment=TA_CENTER
        ))
        self.styles.add(ParagraphStyle(
            name='PlanSubtitle',
            parent=self.styles['Normal'],
            fontSize=12,
            textColor=GRAY_500,
            spaceAfter=24,
            alignment=TA_CENTER
        ))
        self.styles.add(ParagraphStyle(
            name='PlanSection',
            parent=self.styles['Heading2'],
            fontSize=15,
            textColor=INDIGO,
            spaceBefore=16,
            spaceAfter=8
        ))
        self.styles.add(ParagraphStyle(
            name='PlanSubHeader',
            parent=self.styles['Heading4'],
            textColor=GRAY_700,
            spaceBefore=6,
            spaceAfter=4
        ))
        self.styles.add(ParagraphStyle(
            name='PlanBody',
            parent=self.styles['Normal'],
            fontSize=10,
            leading=14,
            textColor=GRAY_700
        ))

    def _field_table(self, data: Dict[str, Any]) -> Optional[Table]:
        rows = [
            [Paragraph(_label(key), self.styles['PlanBody']), Paragraph(_text(value), self.styles['PlanBody'])]
            for key, value in data.items()
            if key not in HIDDEN_FIELDS and not isinstance(value, dict) and has_meaningful_data(value)
            and not (isinstance(value, list) and any(isinstance(v, dict) for v in value))
        ]
        if not rows:
            return None
        table = Table(rows, colWidths=[55*mm, 115*mm])
        table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('LINEBELOW', (0, 0), (-1, -1), 0.5, GRAY_200),
        ]))
        return table

    def _render_value(self, story: List[Any], value: Any) -> None:
        if isinstance(value, dict):
            table = self._field_table(value)
            if table is not None:
                story.append(table)
            for key, child in value.items():
                if key in HIDDEN_FIELDS or not has_meaningful_data(child):
                    continue
                if isinstance(child, dict) or (isinstance(child, list) and any(isinstance(v, dict) for v in child)):
                    story.append(Paragraph(_label(key), self.styles['PlanSubHeader']))
                    self._render_value(story, child)
        elif isinstance(value, list):
            for item in value:
                if has_meaningful_data(item):
                    self._render_value(story, item)
                    story.append(Spacer(1, 3*mm))
        elif has_meaningful_data(value):
            story.append(Paragraph(_text(value), self.styles['PlanBody']))

    def generate(self, unified: Dict[str, Any], prepared_for: Optional[str] = None) -> bytes:
        """Render the plan; sections without data are left out"""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=LETTER,
            topMargin=20*mm,
            bottomMargin=20*mm,
            leftMargin=20*mm,
            rightMargin=20*mm,
            title="My Final Wishes Plan",
        )

        story: List[Any] = [
            Paragraph("My Final Wishes Plan", self.styles['PlanTitle']),
            Paragraph(
                f"Prepared for {escape(str(prepared_for or 'Me'))} on "
                f"{datetime.now(timezone.utc).strftime('%B %d, %Y')}",
                self.styles['PlanSubtitle'],
            ),
        ]
        preparer = unified.get("preparer_name")
        if preparer:
            story.append(Paragraph(f"Prepared by {escape(str(preparer))}", self.styles['PlanSubtitle']))
        story.append(PageBreak())

        rendered = 0
        for key, heading in PDF_SECTIONS:
            value = unified.get(key)
            if not has_meaningful_data(value):
                continue
            story.append(Paragraph(heading, self.styles['PlanSection']))
            self._render_value(story, value)
            rendered += 1

        if not rendered:
            story.append(Paragraph("No plan details have been entered yet.", self.styles['PlanBody']))

        doc.build(story)
        logger.info(f"Plan PDF generated with {rendered} sections")
        return buffer.getvalue()


plan_pdf_generator = PlanPdfGenerator()
