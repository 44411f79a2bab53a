import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import NotFound
from invoicer.core.config import settings
from invoicer.modules.company.models import CompanyProfile
from invoicer.modules.company.schemas import CompanyProfileUpdate

logger = logging.getLogger(__name__)


class CompanyService:
    """Perfil de empresa del usuario (uno por usuario)"""

    def __init__(self, db: Session):
        self.db = db

    def find_profile(self, owner_id: UUID) -> Optional[CompanyProfile]:
        return self.db.query(CompanyProfile).filter(CompanyProfile.user_id == owner_id).first()

    def get_profile(self, owner_id: UUID) -> CompanyProfile:
        with store_errors(self.db, "consultar perfil de empresa"):
            profile = self.find_profile(owner_id)
        if not profile:
            raise NotFound("Perfil de empresa no configurado")
        return profile

    def upsert_profile(self, owner_id: UUID, data: CompanyProfileUpdate) -> CompanyProfile:
        """Crear o reemplazar el perfil de empresa"""
        with store_errors(self.db, "guardar perfil de empresa"):
            profile = self.find_profile(owner_id)
            if profile is None:
                profile = CompanyProfile(user_id=owner_id, **data.model_dump())
                self.db.add(profile)
            else:
                for field, value in data.model_dump().items():
                    setattr(profile, field, value)
            self.db.commit()
            self.db.refresh(profile)

        logger.info(f"Company profile saved for user {owner_id}")
        return profile

    def default_currency(self, owner_id: UUID) -> str:
        profile = self.find_profile(owner_id)
        return profile.default_currency if profile else settings.DEFAULT_CURRENCY

    def payment_terms_days(self, owner_id: UUID) -> int:
        profile = self.find_profile(owner_id)
        return profile.default_payment_terms_days if profile else settings.DEFAULT_PAYMENT_TERMS_DAYS
