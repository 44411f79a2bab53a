"""
Módulo de email para Invoicer.
"""

from .service import email_service
from .tasks import send_document_email_task, queue_document_email

__all__ = [
    'email_service',
    'send_document_email_task',
    'queue_document_email'
]
