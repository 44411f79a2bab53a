"""
CRUD operations para el módulo de Clientes.

Todas las operaciones están scoped por user_id.
"""

from typing import Dict, List
from uuid import UUID

from invoicer.common.crud import OwnedCrud
from invoicer.modules.clients.models import Client
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.projects.models import Project
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt

# Tablas que referencian client_id
DEPENDENT_MODELS = (Project, Invoice, Quote, Receipt)


class ClientCrud(OwnedCrud):
    """Operaciones CRUD para clientes"""

    model = Client
    search_fields = ("business_name", "contact_name", "email", "tax_id")
    order_by = ("business_name",)

    def count_dependents(self, owner_id: UUID, client_id: UUID) -> Dict[str, int]:
        """Cantidad de registros del usuario que referencian al cliente"""
        return {
            model.__tablename__: self.db.query(model).filter(
                model.user_id == owner_id,
                model.client_id == client_id
            ).count()
            for model in DEPENDENT_MODELS
        }

    def dependents(self, owner_id: UUID, model, client_id: UUID) -> List:
        return self.db.query(model).filter(
            model.user_id == owner_id,
            model.client_id == client_id
        ).all()
