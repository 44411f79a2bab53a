"""
Tareas asíncronas de Celery para el envío de documentos por correo.
"""
import base64
import logging
from typing import Any, Dict, Optional
from invoicer.core.celery import celery_app
from invoicer.modules.email.service import email_service

logger = logging.getLogger(__name__)

@celery_app.task(bind=True, max_retries=3)
def send_document_email_task(
    self,
    to_email: str,
    subject: str,
    context: Dict[str, Any],
    filename: str,
    pdf_base64: str,
    template_name: str = "document_email.html"
):
    """
    Enviar factura / cotización / recibo con el PDF adjunto.
    El PDF viaja en base64 porque el serializer de Celery es JSON.
    """
    try:
        attachment = (filename, base64.b64decode(pdf_base64))
        success = email_service.send_template_email(
            to_emails=[to_email],
            subject=subject,
            template_name=template_name,
            context=context,
            attachments=[attachment]
        )

        if not success:
            raise RuntimeError("Failed to send document email")

        logger.info(f"Document {filename} sent to {to_email}")
        return {"status": "success", "recipient": to_email, "filename": filename}

    except Exception as exc:
        logger.error(f"Document email failed: {str(exc)}")

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        return {"status": "failed", "error": str(exc), "recipient": to_email}


def queue_document_email(
    to_email: str,
    subject: str,
    context: Dict[str, Any],
    filename: str,
    pdf_bytes: bytes
) -> Optional[str]:
    """Encolar el envío; retorna el id de la tarea."""
    result = send_document_email_task.delay(
        to_email=to_email,
        subject=subject,
        context=context,
        filename=filename,
        pdf_base64=base64.b64encode(pdf_bytes).decode("ascii")
    )
    return getattr(result, "id", None)
