import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.config import settings

DOCUMENTS_SUBDIR = "documents"


@dataclass
class CertificateData:
    document_number: str
    document_type: str
    resident_name: str
    resident_address: str
    issued_date: datetime
    issued_by: str
    purpose: Optional[str] = None
    template: Optional[str] = None


def certificate_path(document_number: str) -> tuple[str, str]:
    """Return (absolute path, public /uploads path) for a certificate PDF."""
    output_dir = os.path.join(settings.uploads_dir, DOCUMENTS_SUBDIR)
    os.makedirs(output_dir, exist_ok=True)
    filename = f"{document_number}.pdf"
    return os.path.join(output_dir, filename), f"/uploads/{DOCUMENTS_SUBDIR}/{filename}"


def generate_certificate_pdf(data: CertificateData, output_path: str) -> str:
    """Render a one-page certificate to `output_path` and return the path."""
    doc = SimpleDocTemplate(
        output_path,
        pagesize=letter,
        leftMargin=0.7 * inch,
        rightMargin=0.7 * inch,
        topMargin=0.7 * inch,
        bottomMargin=0.7 * inch,
    )
    styles = getSampleStyleSheet()
    body = ParagraphStyle("CertBody", parent=styles["Normal"], fontName="Helvetica", fontSize=11, leading=15)
    justified = ParagraphStyle("CertJustified", parent=body, alignment=TA_JUSTIFY)
    header = ParagraphStyle("CertHeader", parent=body, fontName="Helvetica-Bold", fontSize=16, alignment=TA_CENTER)
    subheader = ParagraphStyle("CertSubheader", parent=body, fontSize=12, alignment=TA_CENTER)
    title = ParagraphStyle("CertTitle", parent=body, fontName="Helvetica-Bold", fontSize=14, alignment=TA_CENTER)
    number = ParagraphStyle("CertNumber", parent=body, fontSize=10, alignment=TA_RIGHT)
    signer = ParagraphStyle("CertSigner", parent=body, fontName="Helvetica-Bold", fontSize=10, alignment=TA_CENTER)
    signer_role = ParagraphStyle("CertSignerRole", parent=body, fontSize=9, alignment=TA_CENTER)

    body_text = data.template or (
        f"This is to certify that {data.resident_name}, of legal age, {data.resident_address}, "
        "is a bonafide resident of this barangay."
    )

    story = [
        Paragraph("BARANGAY OFFICE", header),
        Spacer(1, 0.1 * inch),
        Paragraph("Republic of the Philippines", subheader),
        Spacer(1, 0.3 * inch),
        Paragraph(xml_escape(data.document_type.replace("_", " ")), title),
        Spacer(1, 0.5 * inch),
        Paragraph(f"Certificate No: {xml_escape(data.document_number)}", number),
        Spacer(1, 0.25 * inch),
        Paragraph("TO WHOM IT MAY CONCERN:", ParagraphStyle("CertLeft", parent=body, alignment=TA_LEFT)),
        Spacer(1, 0.25 * inch),
        Paragraph(xml_escape(body_text), justified),
        Spacer(1, 0.25 * inch),
    ]
    if data.purpose:
        story += [
            Paragraph(
                "This certification is issued upon the request of the above-named person "
                f"for {xml_escape(data.purpose)}.",
                justified,
            ),
            Spacer(1, 0.25 * inch),
        ]
    story += [
        Paragraph(
            "Given this day, this certification is issued for whatever legal purpose it may serve.",
            justified,
        ),
        Spacer(1, 0.6 * inch),
    ]

    signature = Table(
        [
            ["", Paragraph("_________________________", signer_role)],
            ["", Paragraph(xml_escape(data.issued_by), signer)],
            ["", Paragraph("Barangay Official", signer_role)],
        ],
        colWidths=[3.6 * inch, 3.0 * inch],
    )
    signature.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    story += [
        signature,
        Spacer(1, 0.3 * inch),
        Paragraph(f"Date: {data.issued_date.strftime('%B %d, %Y')}", body),
    ]

    doc.build(story)
    if not os.path.exists(output_path):
        raise RuntimeError(f"PDF file was not created at {output_path}")
    return output_path
