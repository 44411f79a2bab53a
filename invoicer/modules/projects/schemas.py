from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from invoicer.modules.projects.models import ProjectStatus


class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    client_id: Optional[UUID] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    is_fixed_price: bool = False
    tags: List[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('La fecha de fin no puede ser anterior a la de inicio')
        return self


class ProjectCreate(ProjectBase):
    status: ProjectStatus = ProjectStatus.ACTIVE

    class Config:
        extra = "forbid"


class ProjectUpdate(ProjectBase):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    is_fixed_price: Optional[bool] = None
    tags: Optional[List[str]] = None
    status: Optional[ProjectStatus] = None

    class Config:
        extra = "forbid"


class ProjectOut(ProjectBase):
    id: UUID
    currency: str
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectList(BaseModel):
    items: List[ProjectOut]
    total: int
    limit: int
    offset: int
