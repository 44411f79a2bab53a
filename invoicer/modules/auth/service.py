import logging
from datetime import datetime, timezone
from uuid import UUID
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import AuthFailure, ConflictError, NotFound, ValidationError
from invoicer.modules.auth.models import User
from invoicer.modules.auth.schemas import (
    UserCreate, UserOut, TokenResponse, UserPasswordChange, UserProfileUpdate
)
from invoicer.modules.auth.utils import (
    hash_password, verify_password, create_access_token,
    create_refresh_token, verify_token
)
from invoicer.core.config import settings

logger = logging.getLogger(__name__)

class AuthService:
    """
    Servicio de autenticación de usuarios dueños de datos.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, user_data: UserCreate) -> User:
        """Registrar nuevo usuario."""
        email = user_data.email.lower()
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            raise ConflictError("Este email ya está registrado")

        with store_errors(self.db, "registrar usuario"):
            user = User(
                email=email,
                password=hash_password(user_data.password),
                full_name=user_data.full_name,
                is_active=True
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)

        logger.info(f"User registered: {user.id}")
        return user

    def _token_response(self, user: User, refresh_token: str = None) -> TokenResponse:
        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "user_name": user.full_name or user.email
        }
        return TokenResponse(
            access_token=create_access_token(token_data),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserOut.model_validate(user),
            refresh_token=refresh_token
        )

    def login(self, email: str, password: str) -> TokenResponse:
        """
        Login de usuario. Cualquier fallo devuelve el mismo error.
        """
        user = self.db.query(User).filter(User.email == email.lower()).first()

        if not user or not verify_password(password, user.password) or not user.is_active:
            logger.info("Failed user login attempt")
            raise AuthFailure("Credenciales incorrectas")

        # Actualizar último login
        with store_errors(self.db, "actualizar último login"):
            user.last_login = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(user)

        return self._token_response(user, create_refresh_token(str(user.id)))

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Generar un nuevo access token a partir de un refresh token válido."""
        payload = verify_token(refresh_token, expected_type="refresh")
        try:
            user_id = UUID(payload.get("sub") or "")
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Refresh token inválido")

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user or not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuario inválido")

        return self._token_response(user, refresh_token)

    def _get_user(self, user_id: UUID) -> User:
        with store_errors(self.db, "consultar usuario"):
            user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("Usuario no encontrado")
        return user

    def update_profile(self, user_id: UUID, data: UserProfileUpdate) -> User:
        """
        Actualizar nombre y teléfono del usuario.

        Si cambian first_name o last_name y no se envía full_name, el nombre
        completo se recompone a partir de ambos.
        """
        user = self._get_user(user_id)
        changes = data.model_dump(exclude_unset=True)

        with store_errors(self.db, "actualizar perfil de usuario"):
            for field, value in changes.items():
                setattr(user, field, value)
            if "full_name" not in changes and ({"first_name", "last_name"} & changes.keys()):
                parts = [part for part in (user.first_name, user.last_name) if part]
                user.full_name = " ".join(parts) or None
            self.db.commit()
            self.db.refresh(user)

        logger.info(f"Profile updated for user {user.id}")
        return user

    def change_password(self, user_id: UUID, data: UserPasswordChange) -> None:
        """Requiere la contraseña actual; registra la fecha del cambio"""
        user = self._get_user(user_id)
        if not verify_password(data.current_password, user.password):
            raise AuthFailure("La contraseña actual no es correcta")
        if data.new_password == data.current_password:
            raise ValidationError("La nueva contraseña debe ser distinta de la actual")

        with store_errors(self.db, "cambiar contraseña"):
            user.password = hash_password(data.new_password)
            user.last_password_change = datetime.now(timezone.utc)
            self.db.commit()
        logger.info(f"Password changed for user {user.id}")
