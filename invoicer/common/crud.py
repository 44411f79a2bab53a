"""
CRUD base scoped por usuario dueño.

Todas las consultas filtran por user_id: un registro de otro usuario es
indistinguible de uno inexistente. Los errores de SQLAlchemy se convierten
en errores de dominio con store_errors().
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import (
    DisconnectionError, IntegrityError, InterfaceError, OperationalError
)
from sqlalchemy.orm import Session

from invoicer.common.exceptions import AppError, ConflictError, TransientError
from invoicer.database.database import get_owner_query

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, action: str):
    """Convierte fallos de la base de datos en ConflictError / TransientError."""
    try:
        yield
    except AppError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation while trying to {action}: {e.orig}")
        raise ConflictError(f"Conflicto de datos al {action}: el registro ya existe")
    except (OperationalError, InterfaceError, DisconnectionError) as e:
        db.rollback()
        logger.error(f"Database unavailable while trying to {action}: {str(e)}")
        raise TransientError("Base de datos no disponible, intente de nuevo")


class OwnedCrud:
    """Operaciones CRUD genéricas para modelos con user_id"""

    model = None
    search_fields: Tuple[str, ...] = ()
    order_by: Tuple[str, ...] = ("-created_at",)

    def __init__(self, db: Session):
        self.db = db

    def query(self, owner_id: UUID):
        return get_owner_query(self.db, self.model, owner_id)

    def _ordering(self):
        columns = []
        for name in self.order_by:
            if name.startswith("-"):
                columns.append(getattr(self.model, name[1:]).desc())
            else:
                columns.append(getattr(self.model, name))
        return columns

    def get_by_id(self, owner_id: UUID, entity_id: UUID):
        """Obtener registro por ID (None si no existe o es de otro usuario)"""
        return self.query(owner_id).filter(self.model.id == entity_id).first()

    def get_many(
        self,
        owner_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        status: Optional[Any] = None,
        **filters
    ) -> Tuple[List[Any], int]:
        """Listar registros del usuario con filtros y paginación"""
        query = self.query(owner_id)

        if search and self.search_fields:
            search_term = f"%{search}%"
            query = query.filter(
                or_(*[getattr(self.model, field).ilike(search_term) for field in self.search_fields])
            )

        if status is not None:
            query = query.filter(self.model.status == status)

        for field, value in filters.items():
            if value is not None:
                query = query.filter(getattr(self.model, field) == value)

        total = query.count()
        items = query.order_by(*self._ordering()).offset(offset).limit(limit).all()

        return items, total

    def create(self, owner_id: UUID, data: Dict[str, Any], commit: bool = True):
        """Crear registro para el usuario"""
        entity = self.model(**data, user_id=owner_id)
        self.db.add(entity)

        if commit:
            self.db.commit()
            self.db.refresh(entity)
        else:
            self.db.flush()

        return entity

    def update(self, owner_id: UUID, entity_id: UUID, data: Dict[str, Any], commit: bool = True):
        """Actualizar campos; None si el registro no es del usuario"""
        entity = self.get_by_id(owner_id, entity_id)
        if not entity:
            return None

        for field, value in data.items():
            setattr(entity, field, value)

        if commit:
            self.db.commit()
            self.db.refresh(entity)
        else:
            self.db.flush()

        return entity

    def delete(self, owner_id: UUID, entity_id: UUID, commit: bool = True) -> bool:
        """Eliminar (hard delete); False si el registro no es del usuario"""
        entity = self.get_by_id(owner_id, entity_id)
        if not entity:
            return False

        self.db.delete(entity)
        if commit:
            self.db.commit()
        return True
