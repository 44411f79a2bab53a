"""
Router del back-office de administración

Login con credenciales propias; el resto de endpoints requiere un token de
tipo "admin". La gestión de administradores requiere rol superadmin.
"""

from fastapi import APIRouter, HTTPException, Query, status
from typing import List, Optional
from uuid import UUID

from invoicer.core.config import settings
from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.admin.dependencies import current_admin_dependency, superadmin_dependency
from invoicer.modules.admin.service import AdminAuthService, AdminReportService, AdminUserService
from invoicer.modules.admin.schemas import (
    AdminDocumentList, AdminLogin, AdminPasswordChange, AdminStats, AdminTokenResponse,
    AdminUserCreate, AdminUserOut, AdminUserUpdate, AppUserList
)
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.quotes.models import QuoteStatus

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/login", response_model=AdminTokenResponse)
async def admin_login(credentials: AdminLogin, db: db_dependency):
    """
    Login de administrador. Cualquier fallo responde 401 con el mismo mensaje.
    """
    return AdminAuthService(db).login(credentials.username, credentials.password)


@router.get("/me", response_model=AdminUserOut)
async def get_current_admin_info(current_admin: current_admin_dependency):
    return AdminUserOut.model_validate(current_admin)


# ===== ADMINISTRADORES =====

@router.get("/users", response_model=List[AdminUserOut])
async def list_admins(db: db_dependency, current_admin: current_admin_dependency):
    return [AdminUserOut.model_validate(admin) for admin in AdminUserService(db).list_admins()]


@router.post("/users", response_model=AdminUserOut, status_code=status.HTTP_201_CREATED)
async def create_admin(admin_data: AdminUserCreate, db: db_dependency, current_admin: superadmin_dependency):
    """Crear administrador (solo superadmin)"""
    return AdminUserService(db).create_admin(admin_data)


@router.patch("/users/{admin_id}", response_model=AdminUserOut)
async def update_admin(
    admin_id: UUID,
    admin_data: AdminUserUpdate,
    db: db_dependency,
    current_admin: superadmin_dependency
):
    return AdminUserService(db).update_admin(admin_id, admin_data, current_admin.id)


@router.delete("/users/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_admin(admin_id: UUID, db: db_dependency, current_admin: superadmin_dependency):
    AdminUserService(db).delete_admin(admin_id, current_admin.id)


@router.post("/users/{admin_id}/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_admin_password(
    admin_id: UUID,
    data: AdminPasswordChange,
    db: db_dependency,
    current_admin: current_admin_dependency
):
    """Cambiar la contraseña propia"""
    if admin_id != current_admin.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo puede cambiar su propia contraseña"
        )
    AdminUserService(db).change_password(admin_id, data)


# ===== VISTAS GLOBALES =====

@router.get("/stats", response_model=AdminStats)
async def get_platform_stats(db: db_dependency, current_admin: current_admin_dependency):
    return AdminReportService(db).get_stats()


@router.get("/app-users", response_model=AppUserList)
async def list_app_users(
    db: db_dependency,
    current_admin: current_admin_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Buscar por email o nombre")
):
    return AdminReportService(db).list_app_users(limit, offset, search)


@router.get("/invoices", response_model=AdminDocumentList)
async def list_all_invoices(
    db: db_dependency,
    current_admin: current_admin_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user_id: Optional[UUID] = Query(None, description="Filtrar por usuario"),
    status: Optional[InvoiceStatus] = Query(None)
):
    return AdminReportService(db).list_invoices(limit, offset, user_id, status)


@router.get("/quotes", response_model=AdminDocumentList)
async def list_all_quotes(
    db: db_dependency,
    current_admin: current_admin_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user_id: Optional[UUID] = Query(None, description="Filtrar por usuario"),
    status: Optional[QuoteStatus] = Query(None)
):
    return AdminReportService(db).list_quotes(limit, offset, user_id, status)


@router.get("/receipts", response_model=AdminDocumentList)
async def list_all_receipts(
    db: db_dependency,
    current_admin: current_admin_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user_id: Optional[UUID] = Query(None, description="Filtrar por usuario")
):
    return AdminReportService(db).list_receipts(limit, offset, user_id)
