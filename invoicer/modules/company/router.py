from fastapi import APIRouter

from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.company.schemas import CompanyProfileOut, CompanyProfileUpdate
from invoicer.modules.company.service import CompanyService


company_router = APIRouter()

@company_router.get("/", response_model=CompanyProfileOut)
async def get_company_profile(db: db_dependency, current_user: current_user_dependency):
    """
    Perfil de empresa del usuario actual.
    """
    return CompanyService(db).get_profile(current_user.id)

@company_router.put("/", response_model=CompanyProfileOut)
async def save_company_profile(
    profile: CompanyProfileUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    """
    Crear o actualizar el perfil de empresa (cabecera de PDFs y valores por defecto).
    """
    return CompanyService(db).upsert_profile(current_user.id, profile)
