"""
Dependencias de autenticación del back-office.
"""
from typing import Annotated, List
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.admin.models import AdminUser
from invoicer.modules.auth.utils import verify_token

# Security scheme
admin_security = HTTPBearer()


class AdminDependencies:
    """Dependencias reutilizables para endpoints de administración."""

    @staticmethod
    def get_current_admin(
        db: db_dependency,
        credentials: HTTPAuthorizationCredentials = Depends(admin_security)
    ) -> AdminUser:
        """
        Valida el token de tipo "admin" y vuelve a cargar el administrador;
        un admin desactivado pierde el acceso aunque su token no haya vencido.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se pudieron validar las credenciales",
            headers={"WWW-Authenticate": "Bearer"},
        )

        payload = verify_token(credentials.credentials, expected_type="admin")
        try:
            admin_id = UUID(payload.get("sub") or "")
        except ValueError:
            raise credentials_exception

        admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
        if admin is None or admin.is_active is not True:
            raise credentials_exception

        return admin

    @staticmethod
    def require_role(allowed_roles: List[str]):
        """
        Dependencia para requerir roles específicos de administrador.
        """
        def role_checker(admin: AdminUser = Depends(AdminDependencies.get_current_admin)) -> AdminUser:
            if admin.role not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Se requiere uno de estos roles: {', '.join(allowed_roles)}"
                )
            return admin
        return role_checker


get_current_admin = AdminDependencies.get_current_admin
require_superadmin = AdminDependencies.require_role(["superadmin"])

current_admin_dependency = Annotated[AdminUser, Depends(get_current_admin)]
superadmin_dependency = Annotated[AdminUser, Depends(require_superadmin)]
