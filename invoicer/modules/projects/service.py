import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from invoicer.common.crud import OwnedCrud, store_errors
from invoicer.common.exceptions import NotFound, ValidationError
from invoicer.modules.clients.service import ClientService
from invoicer.modules.company.service import CompanyService
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.projects.models import Project, ProjectStatus
from invoicer.modules.projects.schemas import ProjectCreate, ProjectUpdate, ProjectList, ProjectOut
from invoicer.modules.quotes.models import Quote

logger = logging.getLogger(__name__)


class ProjectCrud(OwnedCrud):
    model = Project
    search_fields = ("name", "description")


class ProjectService:
    """Gestión de proyectos; el cliente es opcional pero debe ser del mismo usuario"""

    def __init__(self, db: Session):
        self.db = db
        self.crud = ProjectCrud(db)

    def get_project(self, owner_id: UUID, project_id: UUID) -> Project:
        with store_errors(self.db, "consultar proyecto"):
            project = self.crud.get_by_id(owner_id, project_id)
        if not project:
            raise NotFound("Proyecto no encontrado")
        return project

    def list_projects(
        self,
        owner_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        status: Optional[ProjectStatus] = None,
        client_id: Optional[UUID] = None
    ) -> ProjectList:
        with store_errors(self.db, "listar proyectos"):
            projects, total = self.crud.get_many(
                owner_id, limit=limit, offset=offset, search=search, status=status, client_id=client_id
            )
        return ProjectList(
            items=[ProjectOut.model_validate(p) for p in projects],
            total=total,
            limit=limit,
            offset=offset
        )

    def create_project(self, owner_id: UUID, project_data: ProjectCreate) -> Project:
        data = project_data.model_dump()
        if data["client_id"]:
            ClientService(self.db).get_client(owner_id, data["client_id"])
        if not data["currency"]:
            data["currency"] = CompanyService(self.db).default_currency(owner_id)

        with store_errors(self.db, "crear proyecto"):
            project = self.crud.create(owner_id, data)
        logger.info(f"Project {project.id} created for user {owner_id}")
        return project

    def update_project(self, owner_id: UUID, project_id: UUID, project_data: ProjectUpdate) -> Project:
        project = self.get_project(owner_id, project_id)
        update_data = project_data.model_dump(exclude_unset=True)

        for field in ("name", "status", "currency", "is_fixed_price", "tags"):
            if field in update_data and update_data[field] is None:
                raise ValidationError(f"{field} no puede ser nulo")

        if update_data.get("client_id"):
            ClientService(self.db).get_client(owner_id, update_data["client_id"])

        # Validar fechas contra los valores actuales
        start_date = update_data.get("start_date", project.start_date)
        end_date = update_data.get("end_date", project.end_date)
        if start_date and end_date and end_date < start_date:
            raise ValidationError("La fecha de fin no puede ser anterior a la de inicio")

        with store_errors(self.db, "actualizar proyecto"):
            project = self.crud.update(owner_id, project_id, update_data)
        return project

    def delete_project(self, owner_id: UUID, project_id: UUID) -> None:
        """Eliminar proyecto; los documentos quedan sin proyecto"""
        project = self.get_project(owner_id, project_id)
        with store_errors(self.db, "eliminar proyecto"):
            for model in (Invoice, Quote):
                self.db.query(model).filter(
                    model.user_id == owner_id,
                    model.project_id == project_id
                ).update({model.project_id: None}, synchronize_session=False)
            self.db.delete(project)
            self.db.commit()
        logger.info(f"Project {project_id} deleted for user {owner_id}")
