import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import AuthFailure, ConflictError, NotFound, ValidationError
from invoicer.core.config import settings
from invoicer.modules.admin.models import AdminUser
from invoicer.modules.admin.schemas import (
    AdminDocumentList, AdminDocumentOut, AdminPasswordChange, AdminStats,
    AdminTokenResponse, AdminUserCreate, AdminUserOut, AdminUserUpdate,
    AppUserList, AppUserOut
)
from invoicer.modules.admin.security import (
    DUMMY_HASH, DUMMY_SALT, generate_salt, hash_admin_password, hashes_match
)
from invoicer.modules.auth.models import User
from invoicer.modules.auth.utils import create_admin_token
from invoicer.modules.clients.models import Client
from invoicer.modules.documents.totals import ZERO
from invoicer.modules.invoices.models import Invoice, InvoiceStatus
from invoicer.modules.projects.models import Project
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt

logger = logging.getLogger(__name__)

# Facturas que cuentan como facturado
BILLED_EXCLUDED = (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED)


class AdminAuthService:
    """Verificación de credenciales del back-office"""

    def __init__(self, db: Session):
        self.db = db

    def verify(self, username: str, password: str) -> AdminUserOut:
        """
        Valida usuario y contraseña.

        El hash se calcula siempre (con un salt ficticio si el usuario no
        existe o está inactivo) y se compara en tiempo constante; todos los
        fallos lanzan el mismo AuthFailure.
        """
        with store_errors(self.db, "verificar administrador"):
            admin = self.db.query(AdminUser).filter(AdminUser.username == username).first()

        usable = admin is not None and admin.is_active is True
        salt = admin.salt if usable else DUMMY_SALT
        stored_hash = admin.password_hash if usable else DUMMY_HASH
        matches = hashes_match(hash_admin_password(password, salt), stored_hash)

        if not (usable and matches):
            logger.info("Failed admin login attempt")
            raise AuthFailure()

        with store_errors(self.db, "actualizar último login de administrador"):
            admin.last_login = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(admin)

        logger.info(f"Admin {admin.id} logged in")
        return AdminUserOut.model_validate(admin)

    def login(self, username: str, password: str) -> AdminTokenResponse:
        admin = self.verify(username, password)
        token = create_admin_token({"sub": str(admin.id), "role": admin.role})
        return AdminTokenResponse(
            access_token=token,
            token_type="bearer",
            expires_in=settings.ADMIN_TOKEN_EXPIRE_MINUTES * 60,
            admin=admin
        )


class AdminUserService:
    """Gestión de cuentas de administrador"""

    def __init__(self, db: Session):
        self.db = db

    def get_admin(self, admin_id: UUID) -> AdminUser:
        with store_errors(self.db, "consultar administrador"):
            admin = self.db.query(AdminUser).filter(AdminUser.id == admin_id).first()
        if not admin:
            raise NotFound("Administrador no encontrado")
        return admin

    def list_admins(self) -> List[AdminUser]:
        with store_errors(self.db, "listar administradores"):
            return self.db.query(AdminUser).order_by(AdminUser.username).all()

    def _ensure_unique(self, username: Optional[str], email: Optional[str], exclude_id: Optional[UUID] = None):
        filters = []
        if username:
            filters.append(AdminUser.username == username)
        if email:
            filters.append(AdminUser.email == email)
        if not filters:
            return

        query = self.db.query(AdminUser).filter(or_(*filters))
        if exclude_id:
            query = query.filter(AdminUser.id != exclude_id)
        if query.first():
            raise ConflictError("El usuario o email de administrador ya existe")

    def create_admin(self, admin_data: AdminUserCreate) -> AdminUser:
        username = admin_data.username.strip()
        email = admin_data.email.lower()
        self._ensure_unique(username, email)

        salt = generate_salt()
        with store_errors(self.db, "crear administrador"):
            admin = AdminUser(
                username=username,
                email=email,
                password_hash=hash_admin_password(admin_data.password, salt),
                salt=salt,
                role=admin_data.role,
                is_active=True
            )
            self.db.add(admin)
            self.db.commit()
            self.db.refresh(admin)

        logger.info(f"Admin {admin.username} created with role {admin.role}")
        return admin

    def update_admin(self, admin_id: UUID, admin_data: AdminUserUpdate, current_admin_id: UUID) -> AdminUser:
        admin = self.get_admin(admin_id)
        update = admin_data.model_dump(exclude_unset=True)

        for field in ("email", "role", "is_active"):
            if field in update and update[field] is None:
                raise ValidationError(f"{field} no puede ser nulo")
        if admin.id == current_admin_id and update.get("is_active") is False:
            raise ValidationError("No puede desactivar su propia cuenta")
        if "email" in update:
            update["email"] = update["email"].lower()
            self._ensure_unique(None, update["email"], exclude_id=admin.id)

        with store_errors(self.db, "actualizar administrador"):
            for field, value in update.items():
                setattr(admin, field, value)
            self.db.commit()
            self.db.refresh(admin)
        return admin

    def change_password(self, admin_id: UUID, data: AdminPasswordChange) -> None:
        """Requiere la contraseña actual; genera un salt nuevo"""
        admin = self.get_admin(admin_id)
        if not hashes_match(hash_admin_password(data.current_password, admin.salt), admin.password_hash):
            raise AuthFailure("La contraseña actual no es correcta")

        with store_errors(self.db, "cambiar contraseña de administrador"):
            admin.salt = generate_salt()
            admin.password_hash = hash_admin_password(data.new_password, admin.salt)
            self.db.commit()
        logger.info(f"Password changed for admin {admin.id}")

    def delete_admin(self, admin_id: UUID, current_admin_id: UUID) -> None:
        if admin_id == current_admin_id:
            raise ValidationError("No puede eliminar su propia cuenta")
        admin = self.get_admin(admin_id)
        with store_errors(self.db, "eliminar administrador"):
            self.db.delete(admin)
            self.db.commit()
        logger.info(f"Admin {admin_id} deleted")


class AdminReportService:
    """Vistas globales (todos los usuarios) para el back-office"""

    def __init__(self, db: Session):
        self.db = db

    def _count(self, model) -> int:
        return self.db.query(func.count(model.id)).scalar() or 0

    def _by_status(self, model) -> Dict[str, int]:
        rows = self.db.query(model.status, func.count(model.id)).group_by(model.status).all()
        return {status.value: count for status, count in rows}

    def get_stats(self) -> AdminStats:
        with store_errors(self.db, "calcular estadísticas"):
            invoiced = self.db.query(func.coalesce(func.sum(Invoice.total_amount), 0)).filter(
                Invoice.status.notin_(BILLED_EXCLUDED)
            ).scalar()
            received = self.db.query(func.coalesce(func.sum(Receipt.amount), 0)).scalar()

            return AdminStats(
                total_users=self._count(User),
                active_users=self.db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0,
                total_clients=self._count(Client),
                total_projects=self._count(Project),
                total_invoices=self._count(Invoice),
                total_quotes=self._count(Quote),
                total_receipts=self._count(Receipt),
                total_invoiced=Decimal(str(invoiced or 0)),
                total_received=Decimal(str(received or 0)),
                invoices_by_status=self._by_status(Invoice),
                quotes_by_status=self._by_status(Quote)
            )

    def list_app_users(self, limit: int, offset: int, search: Optional[str] = None) -> AppUserList:
        with store_errors(self.db, "listar usuarios"):
            query = self.db.query(User)
            if search:
                search_term = f"%{search}%"
                query = query.filter(or_(User.email.ilike(search_term), User.full_name.ilike(search_term)))

            total = query.count()
            users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()

            ids = [user.id for user in users]
            client_counts = dict(
                self.db.query(Client.user_id, func.count(Client.id))
                .filter(Client.user_id.in_(ids)).group_by(Client.user_id).all()
            ) if ids else {}
            invoice_counts = dict(
                self.db.query(Invoice.user_id, func.count(Invoice.id))
                .filter(Invoice.user_id.in_(ids)).group_by(Invoice.user_id).all()
            ) if ids else {}

        items = [
            AppUserOut(
                id=user.id,
                email=user.email,
                full_name=user.full_name,
                is_active=user.is_active,
                last_login=user.last_login,
                created_at=user.created_at,
                client_count=client_counts.get(user.id, 0),
                invoice_count=invoice_counts.get(user.id, 0)
            )
            for user in users
        ]
        return AppUserList(items=items, total=total, limit=limit, offset=offset)

    def _list_documents(
        self,
        model,
        number_column,
        date_column,
        amount_column,
        limit: int,
        offset: int,
        user_id: Optional[UUID] = None,
        status=None
    ) -> AdminDocumentList:
        with store_errors(self.db, f"listar {model.__tablename__}"):
            query = self.db.query(model, User.email, Client.business_name).join(
                User, User.id == model.user_id
            ).outerjoin(Client, Client.id == model.client_id)

            if user_id:
                query = query.filter(model.user_id == user_id)
            if status is not None:
                query = query.filter(model.status == status)

            total = query.count()
            rows = query.order_by(date_column.desc(), model.created_at.desc()).offset(offset).limit(limit).all()

        items = []
        for document, user_email, client_name in rows:
            status_value = getattr(document, "status", None)
            items.append(AdminDocumentOut(
                id=document.id,
                user_id=document.user_id,
                user_email=user_email,
                client_name=client_name,
                number=getattr(document, number_column.key),
                status=status_value.value if status_value is not None else None,
                issue_date=getattr(document, date_column.key),
                currency=document.currency,
                total_amount=getattr(document, amount_column.key) or ZERO
            ))
        return AdminDocumentList(items=items, total=total, limit=limit, offset=offset)

    def list_invoices(self, limit: int, offset: int, user_id: Optional[UUID] = None, status=None) -> AdminDocumentList:
        return self._list_documents(
            Invoice, Invoice.invoice_number, Invoice.issue_date, Invoice.total_amount,
            limit, offset, user_id, status
        )

    def list_quotes(self, limit: int, offset: int, user_id: Optional[UUID] = None, status=None) -> AdminDocumentList:
        return self._list_documents(
            Quote, Quote.quote_number, Quote.issue_date, Quote.total_amount,
            limit, offset, user_id, status
        )

    def list_receipts(self, limit: int, offset: int, user_id: Optional[UUID] = None) -> AdminDocumentList:
        return self._list_documents(
            Receipt, Receipt.receipt_number, Receipt.date, Receipt.amount,
            limit, offset, user_id
        )
