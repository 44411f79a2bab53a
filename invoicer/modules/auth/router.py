from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.auth.service import AuthService
from invoicer.modules.auth.schemas import (
    UserCreate, UserOut, TokenResponse, RefreshTokenRequest, UserPasswordChange, UserProfileUpdate
)

auth_router = APIRouter()

@auth_router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: db_dependency):
    """
    Registrar nuevo usuario.
    """
    auth_service = AuthService(db)
    return auth_service.create_user(user_data)

@auth_router.post("/login", response_model=TokenResponse)
async def login(db: db_dependency, form_data: OAuth2PasswordRequestForm = Depends()):
    """
    Login de usuario. Retorna token de acceso y refresh token.
    """
    auth_service = AuthService(db)
    return auth_service.login(form_data.username, form_data.password)

@auth_router.get("/me", response_model=UserOut)
async def get_current_user_info(current_user: current_user_dependency):
    """
    Obtener información del usuario actual.
    """
    return UserOut.model_validate(current_user)

@auth_router.patch("/me", response_model=UserOut)
async def update_current_user(data: UserProfileUpdate, db: db_dependency, current_user: current_user_dependency):
    """
    Actualizar nombre y teléfono del usuario actual.
    """
    return AuthService(db).update_profile(current_user.id, data)

@auth_router.post("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(data: UserPasswordChange, db: db_dependency, current_user: current_user_dependency):
    AuthService(db).change_password(current_user.id, data)

@auth_router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: RefreshTokenRequest, db: db_dependency):
    """
    Renovar token de acceso con refresh token.
    """
    auth_service = AuthService(db)
    return auth_service.refresh_access_token(body.refresh_token)
