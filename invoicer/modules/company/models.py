from invoicer.database.database import Base
from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from invoicer.common.mixins import BaseMixin

class CompanyProfile(Base, BaseMixin):
    """Datos de la empresa del usuario: cabecera de PDFs y valores por defecto"""
    __tablename__ = "company_profiles"

    company_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    tax_id = Column(String(50), nullable=True)
    website = Column(String(255), nullable=True)
    default_currency = Column(String(3), nullable=False, default="USD")
    default_payment_terms_days = Column(Integer, nullable=False, default=30)
    default_terms = Column(Text, nullable=True)
    default_footer = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_company_profile_user"),
    )
