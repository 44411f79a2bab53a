from fastapi import APIRouter, Query

from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.dashboard.schemas import DashboardSummary
from invoicer.modules.dashboard.service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    db: db_dependency,
    current_user: current_user_dependency,
    months: int = Query(12, ge=1, le=36, description="Meses de ingresos a incluir")
):
    """
    Resumen del usuario: totales facturados y cobrados, documentos por estado,
    ingresos por mes y documentos recientes.
    """
    return DashboardService(db).get_summary(current_user.id, months=months)
