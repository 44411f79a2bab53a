from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID

from invoicer.core.config import settings
from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.projects.models import ProjectStatus
from invoicer.modules.projects.service import ProjectService
from invoicer.modules.projects.schemas import ProjectCreate, ProjectUpdate, ProjectOut, ProjectList

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("/", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create_project(project_data: ProjectCreate, db: db_dependency, current_user: current_user_dependency):
    """Crear un proyecto, opcionalmente asociado a un cliente"""
    return ProjectService(db).create_project(current_user.id, project_data)


@router.get("/", response_model=ProjectList)
async def list_projects(
    db: db_dependency,
    current_user: current_user_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None),
    status: Optional[ProjectStatus] = Query(None),
    client_id: Optional[UUID] = Query(None)
):
    """Listar proyectos"""
    return ProjectService(db).list_projects(current_user.id, limit, offset, search, status, client_id)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return ProjectService(db).get_project(current_user.id, project_id)


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: UUID,
    project_data: ProjectUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    return ProjectService(db).update_project(current_user.id, project_id, project_data)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: UUID, db: db_dependency, current_user: current_user_dependency):
    ProjectService(db).delete_project(current_user.id, project_id)
