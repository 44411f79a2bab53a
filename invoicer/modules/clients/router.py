"""
Router para el módulo de Clientes

Todos los endpoints requieren autenticación y están scoped por el usuario.
"""

from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID

from invoicer.core.config import settings
from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.clients.models import ClientStatus
from invoicer.modules.clients.service import ClientService
from invoicer.modules.clients.schemas import (
    ClientCreate, ClientUpdate, ClientOut, ClientList, ClientSummary
)

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
async def create_client(client_data: ClientCreate, db: db_dependency, current_user: current_user_dependency):
    """
    Crear un nuevo cliente

    - **business_name**: Razón social (requerido)
    - **email**: Email válido (opcional)
    """
    return ClientService(db).create_client(current_user.id, client_data)


@router.get("/", response_model=ClientList)
async def list_clients(
    db: db_dependency,
    current_user: current_user_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Búsqueda por razón social, contacto, email o NIT"),
    status: Optional[ClientStatus] = Query(None, description="Filtrar por estado")
):
    """Listar clientes con filtros opcionales"""
    return ClientService(db).list_clients(current_user.id, limit, offset, search, status)


@router.get("/{client_id}", response_model=ClientOut)
async def get_client(client_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Obtener un cliente"""
    return ClientService(db).get_client(current_user.id, client_id)


@router.get("/{client_id}/summary", response_model=ClientSummary)
async def get_client_summary(client_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Resumen de facturación del cliente"""
    return ClientService(db).get_client_summary(current_user.id, client_id)


@router.patch("/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: UUID,
    client_data: ClientUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    """Actualizar un cliente"""
    return ClientService(db).update_client(current_user.id, client_id, client_data)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """
    Eliminar un cliente. El tratamiento de sus documentos depende de
    CLIENT_DELETE_POLICY (orphan, restrict o cascade).
    """
    ClientService(db).delete_client(current_user.id, client_id)
