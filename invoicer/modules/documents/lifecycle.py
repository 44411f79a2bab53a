"""
Máquinas de estado de facturas y cotizaciones.

Los cambios de estado solo ocurren a través de StatusLifecycle.transition();
el estado nunca se edita como un campo libre.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional

from invoicer.common.exceptions import InvalidTransition
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.quotes.models import QuoteStatus

logger = logging.getLogger(__name__)

Guard = Callable[[Any, date], bool]


class StatusLifecycle:
    """Tabla de transiciones explícita más guardas opcionales por estado destino"""

    def __init__(
        self,
        name: str,
        transitions: Dict[Any, Iterable[Any]],
        guards: Optional[Dict[Any, Guard]] = None
    ):
        self.name = name
        self.transitions: Dict[Any, FrozenSet[Any]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }
        self.guards = guards or {}

    def allowed_targets(self, current) -> FrozenSet[Any]:
        return self.transitions.get(current, frozenset())

    def is_terminal(self, current) -> bool:
        return not self.allowed_targets(current)

    def can_transition(self, current, target) -> bool:
        return target in self.allowed_targets(current)

    def transition(self, document, target, today: Optional[date] = None):
        """
        Mueve el documento al estado destino o lanza InvalidTransition
        sin modificarlo.
        """
        current = document.status
        if not self.can_transition(current, target):
            raise InvalidTransition(_value(current), _value(target))

        guard = self.guards.get(target)
        if guard and not guard(document, today or date.today()):
            raise InvalidTransition(
                _value(current), _value(target),
                f"No se puede pasar a {_value(target)}: la fecha límite aún no ha vencido"
            )

        document.status = target
        logger.info(f"{self.name} {getattr(document, 'id', '')}: {_value(current)} -> {_value(target)}")
        return document


def _value(status) -> str:
    return getattr(status, "value", status)


INVOICE_LIFECYCLE = StatusLifecycle(
    "invoice",
    {
        InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.CANCELLED},
        InvoiceStatus.SENT: {
            InvoiceStatus.VIEWED, InvoiceStatus.PAID,
            InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
        },
        InvoiceStatus.VIEWED: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
        InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
        InvoiceStatus.PAID: set(),
        InvoiceStatus.CANCELLED: set(),
    },
    guards={
        InvoiceStatus.OVERDUE: lambda invoice, today: (
            invoice.due_date is not None and invoice.due_date < today
        ),
    },
)

QUOTE_LIFECYCLE = StatusLifecycle(
    "quote",
    {
        QuoteStatus.DRAFT: {QuoteStatus.SENT},
        QuoteStatus.SENT: {
            QuoteStatus.VIEWED, QuoteStatus.ACCEPTED,
            QuoteStatus.REJECTED, QuoteStatus.EXPIRED,
        },
        QuoteStatus.VIEWED: {QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED},
        QuoteStatus.ACCEPTED: set(),
        QuoteStatus.REJECTED: set(),
        QuoteStatus.EXPIRED: set(),
    },
    guards={
        QuoteStatus.EXPIRED: lambda quote, today: (
            quote.expiry_date is not None and quote.expiry_date < today
        ),
    },
)
