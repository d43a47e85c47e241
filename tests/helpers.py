import base64
import io
import uuid

from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from modules.documents.models import DocumentTemplate, DocumentType, User, UserRole
from modules.documents.services import DocumentService


def create_dummy_user(session, username, role, full_name=None, **extra):
    user = User(
        username=username,
        full_name=full_name or username.replace("_", " ").title(),
        email=f"{username}@university.edu",
        role=role,
        is_active=True,
        **extra,
    )
    session.add(user)
    session.commit()
    return user


def create_pdf_bytes(pages=1, pagesize=letter):
    """A fresh PDF; the random line keeps every file's hash distinct."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    for number in range(pages):
        c.drawString(72, 720, f"Test document page {number + 1} - {uuid.uuid4()}")
        c.showPage()
    c.save()
    return buf.getvalue()


def signature_data_uri(fmt="PNG", size=(300, 100)):
    mode = "RGBA" if fmt == "PNG" else "RGB"
    image = Image.new(mode, size, (20, 20, 120, 255) if mode == "RGBA" else (20, 20, 120))
    buf = io.BytesIO()
    image.save(buf, format=fmt)
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime};base64,{base64.b64encode(buf.getvalue()).decode('ascii')}"


def create_template(session, approval_path, document_type=DocumentType.OTHER, placements=None):
    template = DocumentTemplate(
        name=f"{document_type.value} template",
        type=document_type,
        approval_path=list(approval_path),
        required_roles=["student"],
        signature_placements=placements or {},
        is_active=True,
    )
    session.add(template)
    session.commit()
    return template


def create_document_in_review(session, settings, owner, approval_path,
                              document_type=DocumentType.OTHER, placements=None, pdf=None):
    create_template(session, approval_path, document_type, placements)
    document = DocumentService.create_document(
        session, owner.id, "Official transcript", pdf or create_pdf_bytes(),
        "transcript.pdf", "application/pdf", document_type, settings=settings,
    )
    workflow = DocumentService.start_review(session, document.id)
    return document, workflow


def reviewers(session):
    return {
        "student": create_dummy_user(session, "student", UserRole.STUDENT, "Grace Student"),
        "dean": create_dummy_user(session, "dean", UserRole.DEAN, "Edsger Dean"),
        "registrar": create_dummy_user(session, "registrar", UserRole.ASSISTANT_REGISTRAR, "Barbara Registrar"),
        "lecturer": create_dummy_user(session, "lecturer", UserRole.ACADEMIC_STAFF, "Alan Lecturer"),
    }
