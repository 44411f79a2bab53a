"""
Tests del envío de documentos por correo (sin SMTP real)
"""

import base64
from unittest.mock import patch

from invoicer.modules.email.service import email_service
from invoicer.modules.email.tasks import queue_document_email, send_document_email_task

CONTEXT = {
    "document_label": "Factura",
    "document_number": "INV-0007",
    "client_name": "Acme Inc",
    "company_name": "Estudio Norte",
    "issue_date": "2025-01-10",
    "due_date": "2025-02-09",
    "currency": "USD",
    "total": "220.00",
    "message": None,
}


class TestEmailService:

    def test_render_document_template(self):
        html = email_service.render_template("document_email.html", CONTEXT)
        assert "INV-0007" in html
        assert "Estudio Norte" in html
        assert "220.00" in html

    def test_message_carries_pdf_attachment(self):
        msg = email_service.build_message(
            ["billing@acme.com"], "Factura INV-0007", html_content="<p>Hola</p>",
            attachments=[("acme-inc-invoice-INV-0007.pdf", b"%PDF-1.4 fake")]
        )
        parts = [part for part in msg.walk() if part.get_filename()]
        assert [part.get_filename() for part in parts] == ["acme-inc-invoice-INV-0007.pdf"]
        assert parts[0].get_payload(decode=True) == b"%PDF-1.4 fake"

    def test_smtp_failure_returns_false(self):
        with patch.object(email_service, "_create_smtp_connection", side_effect=OSError("refused")):
            assert email_service.send_email(["a@b.com"], "x", text_content="x") is False


class TestDocumentEmailTask:

    def test_queue_encodes_pdf(self, email_queue):
        task_id = queue_document_email("billing@acme.com", "Factura", CONTEXT, "f.pdf", b"%PDF")
        assert task_id == "task-123"
        assert base64.b64decode(email_queue.call_args.kwargs["pdf_base64"]) == b"%PDF"

    def test_task_sends_attachment(self):
        with patch.object(email_service, "send_template_email", return_value=True) as send:
            result = send_document_email_task.apply(kwargs={
                "to_email": "billing@acme.com",
                "subject": "Factura INV-0007",
                "context": CONTEXT,
                "filename": "f.pdf",
                "pdf_base64": base64.b64encode(b"%PDF").decode("ascii"),
            }).get()

        assert result["status"] == "success"
        assert send.call_args.kwargs["attachments"] == [("f.pdf", b"%PDF")]
