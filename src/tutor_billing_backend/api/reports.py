'''
API endpoints for professor payment reports.
'''
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from ..models import reports as report_models
from ..services.report_service import ReportService

MonthQuery = Annotated[str, Query(description="Closed month to report on, YYYY-MM")]

class ReportsAPI:
    """
    A class to encapsulate endpoints for monthly payment reports.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/reports",
            tags=["Reports"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/general",
                self.get_general_report,
                methods=["GET"],
                response_model=list[report_models.ProfessorReport])
        self.router.add_api_route(
                "/special-professor",
                self.get_special_professor_report,
                methods=["GET"],
                response_model=report_models.ProfessorReport)
        self.router.add_api_route(
                "/professors/{professor_id}",
                self.get_professor_report,
                methods=["GET"],
                response_model=report_models.ProfessorReport)

    async def get_professor_report(
        self,
        professor_id: UUID,
        month: MonthQuery,
        report_service: Annotated[ReportService, Depends(ReportService)]
    ) -> Any:
        """
        Generates the payment report of one professor for a month.
        """
        return await report_service.generate_report(professor_id, month)

    async def get_special_professor_report(
        self,
        month: MonthQuery,
        report_service: Annotated[ReportService, Depends(ReportService)]
    ) -> Any:
        """
        Generates the payment report of the configured special professor.
        """
        return await report_service.generate_special_professor_report(month)

    async def get_general_report(
        self,
        month: MonthQuery,
        report_service: Annotated[ReportService, Depends(ReportService)]
    ) -> list[Any]:
        """
        Generates one report per professor, excluding the special professor.
        """
        return await report_service.generate_general_report(month)

# Instantiate the class and export its router
reports_api = ReportsAPI()
router = reports_api.router
