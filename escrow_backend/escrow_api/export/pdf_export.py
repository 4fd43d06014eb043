import logging
from datetime import datetime, timezone
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from ..constants.constants import ROLE_MAPPING, PROPERTY_LABELS, FLAG_LABELS, MULTI_RELEASE

logger = logging.getLogger('escrow_app')

REPORT_TITLE = "Escrow Audit Report"

HEADER_TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, -1), 9),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
])

KEY_VALUE_TABLE_STYLE = TableStyle([
    ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, -1), 9),
    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.lightgrey),
])


def export_filename(contract_id, network):
    return f"escrow-{contract_id}-{network}.pdf"


def _cell(value, style):
    return Paragraph(escape("" if value is None else str(value)), style)


def _key_value_table(rows, style):
    table = Table([[_cell(label, style), _cell(value, style)] for label, value in rows], colWidths=[130, 340])
    table.setStyle(KEY_VALUE_TABLE_STYLE)
    return table


def _milestones_table(milestones, multi_release, style):
    header = ['#', 'Title', 'Status', 'Approved']
    if multi_release:
        header += ['Amount', 'Released', 'Disputed', 'Signer', 'Approver']

    rows = [[_cell(column, style) for column in header]]
    for milestone in milestones:
        row = [milestone['id'] + 1, milestone['title'], milestone['status'],
               "Yes" if milestone['approved'] else "No"]
        if multi_release:
            row += [milestone.get('amount') or "N/A",
                    "Yes" if milestone.get('release_flag') else "No",
                    "Yes" if milestone.get('dispute_flag') else "No",
                    milestone.get('signer') or "N/A",
                    milestone.get('approver') or "N/A"]
        rows.append([_cell(value, style) for value in row])

    table = Table(rows, repeatRows=1)
    table.setStyle(HEADER_TABLE_STYLE)
    return table


def generate_escrow_pdf(organized, network, contract_id) -> bytes:
    """
    Render an escrow report as PDF.

    Args:
        organized (OrganizedEscrowData): The display model of the escrow.
        network (str): Network the data was read from, printed in the footer.
        contract_id (str): The escrow contract ID.

    Returns:
        bytes: The PDF document.
    """
    data = organized.to_dict()
    styles = getSampleStyleSheet()
    small = styles['BodyText'].clone('EscrowSmall', fontSize=8, leading=10)

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=LETTER, title=f"{REPORT_TITLE} {contract_id}")
    story = []

    # Header
    story.append(Paragraph(REPORT_TITLE, styles['Title']))
    story.append(Paragraph(escape(data['title'] or "Escrow"), styles['Heading1']))
    if data['description']:
        story.append(Paragraph(escape(data['description']), styles['Normal']))
    story.append(Spacer(1, 12))

    # Summary
    story.append(Paragraph("Escrow Details", styles['Heading2']))
    story.append(_key_value_table(
        [(PROPERTY_LABELS.get(key, key), value) for key, value in data['properties'].items()], small))
    story.append(Spacer(1, 12))

    # Status
    story.append(Paragraph("Status", styles['Heading2']))
    status_rows = [(FLAG_LABELS.get(key, key), value) for key, value in data['flags'].items()]
    status_rows.append(("Escrow Type", data['escrow_type']))
    status_rows.append(("Progress", f"{data['progress']:.0f}%"))
    story.append(_key_value_table(status_rows, small))
    story.append(Spacer(1, 12))

    # Roles
    story.append(Paragraph("Assigned Roles", styles['Heading2']))
    if data['roles']:
        story.append(_key_value_table(
            [(ROLE_MAPPING.get(key, key), value) for key, value in data['roles'].items()], small))
    else:
        story.append(Paragraph("No roles assigned", styles['Normal']))
    story.append(Spacer(1, 12))

    # Milestones
    story.append(Paragraph("Milestones", styles['Heading2']))
    if data['milestones']:
        multi_release = organized.escrow_type == MULTI_RELEASE
        story.append(_milestones_table(data['milestones'], multi_release, small))
    else:
        story.append(Paragraph("No milestones found", styles['Normal']))
    story.append(Spacer(1, 20))

    # Footer
    generated_at = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
    story.append(Paragraph(f"Network: {escape(network)} | Generated: {generated_at}", small))

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()

    logger.info(f"Generated PDF report for {contract_id} on {network}: {len(pdf_bytes)} bytes")
    return pdf_bytes
