"""
Servicios de negocio para el módulo de Clientes

- CRUD scoped por usuario
- Borrado con política configurable (orphan, restrict, cascade)
- Resumen de facturación por cliente
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import ConflictError, NotFound, ValidationError
from invoicer.core.config import settings
from invoicer.modules.clients.crud import ClientCrud
from invoicer.modules.clients.models import Client, ClientStatus
from invoicer.modules.clients.schemas import (
    ClientCreate, ClientUpdate, ClientList, ClientOut, ClientSummary
)
from invoicer.modules.invoices.models import Invoice, InvoiceStatus
from invoicer.modules.projects.models import Project
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt

logger = logging.getLogger(__name__)

DELETE_POLICIES = ("orphan", "restrict", "cascade")


class ClientService:
    """Servicio principal para gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db
        self.crud = ClientCrud(db)

    def get_client(self, owner_id: UUID, client_id: UUID) -> Client:
        """Obtener cliente del usuario o NotFound"""
        with store_errors(self.db, "consultar cliente"):
            client = self.crud.get_by_id(owner_id, client_id)
        if not client:
            raise NotFound("Cliente no encontrado")
        return client

    def find_client(self, owner_id: UUID, client_id: Optional[UUID]) -> Optional[Client]:
        """Cliente o None (clientes huérfanos en documentos)"""
        if client_id is None:
            return None
        return self.crud.get_by_id(owner_id, client_id)

    def list_clients(
        self,
        owner_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        status: Optional[ClientStatus] = None
    ) -> ClientList:
        """Listar clientes con filtros"""
        with store_errors(self.db, "listar clientes"):
            clients, total = self.crud.get_many(
                owner_id, limit=limit, offset=offset, search=search, status=status
            )
        return ClientList(
            items=[ClientOut.model_validate(c) for c in clients],
            total=total,
            limit=limit,
            offset=offset
        )

    def create_client(self, owner_id: UUID, client_data: ClientCreate) -> Client:
        """Crear un nuevo cliente"""
        with store_errors(self.db, "crear cliente"):
            client = self.crud.create(owner_id, client_data.model_dump())
        logger.info(f"Client {client.id} created for user {owner_id}")
        return client

    def update_client(self, owner_id: UUID, client_id: UUID, client_data: ClientUpdate) -> Client:
        """Actualizar cliente"""
        update_data = client_data.model_dump(exclude_unset=True)
        if "business_name" in update_data and not update_data["business_name"]:
            raise ValidationError("La razón social es obligatoria")
        if "status" in update_data and update_data["status"] is None:
            raise ValidationError("El estado del cliente no puede ser nulo")

        with store_errors(self.db, "actualizar cliente"):
            client = self.crud.update(owner_id, client_id, update_data)
        if not client:
            raise NotFound("Cliente no encontrado")
        return client

    def delete_client(self, owner_id: UUID, client_id: UUID, policy: Optional[str] = None) -> None:
        """
        Eliminar cliente (hard delete).

        orphan: los documentos conservan el client_id del cliente eliminado.
        restrict: ConflictError si algún registro lo referencia.
        cascade: elimina también proyectos, facturas, cotizaciones y recibos.
        """
        policy = policy or settings.CLIENT_DELETE_POLICY
        if policy not in DELETE_POLICIES:
            raise ValidationError(f"Política de borrado desconocida: {policy}")

        client = self.get_client(owner_id, client_id)

        with store_errors(self.db, "eliminar cliente"):
            if policy == "restrict":
                dependents = {k: v for k, v in self.crud.count_dependents(owner_id, client_id).items() if v}
                if dependents:
                    detail = ", ".join(f"{name}: {count}" for name, count in dependents.items())
                    raise ConflictError(f"El cliente tiene registros asociados ({detail})")

            elif policy == "cascade":
                # Recibos primero: referencian facturas y cotizaciones
                for model in (Receipt, Quote, Invoice, Project):
                    for row in self.crud.dependents(owner_id, model, client_id):
                        self.db.delete(row)
                    self.db.flush()

            self.db.delete(client)
            self.db.commit()

        logger.info(f"Client {client_id} deleted for user {owner_id} (policy={policy})")

    def get_client_summary(self, owner_id: UUID, client_id: UUID) -> ClientSummary:
        """Resumen de documentos y montos del cliente"""
        client = self.get_client(owner_id, client_id)
        counts = self.crud.count_dependents(owner_id, client_id)

        with store_errors(self.db, "calcular resumen de cliente"):
            total_invoiced = self.db.query(func.coalesce(func.sum(Invoice.total_amount), 0)).filter(
                Invoice.user_id == owner_id,
                Invoice.client_id == client_id,
                Invoice.status.notin_([InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED])
            ).scalar()
            total_received = self.db.query(func.coalesce(func.sum(Receipt.amount), 0)).filter(
                Receipt.user_id == owner_id,
                Receipt.client_id == client_id
            ).scalar()

        total_invoiced = Decimal(str(total_invoiced)).quantize(Decimal("0.01"))
        total_received = Decimal(str(total_received)).quantize(Decimal("0.01"))

        return ClientSummary(
            client=ClientOut.model_validate(client),
            project_count=counts[Project.__tablename__],
            invoice_count=counts[Invoice.__tablename__],
            quote_count=counts[Quote.__tablename__],
            receipt_count=counts[Receipt.__tablename__],
            total_invoiced=total_invoiced,
            total_received=total_received,
            outstanding=max(Decimal("0.00"), total_invoiced - total_received)
        )
