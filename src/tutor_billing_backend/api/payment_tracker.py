'''
API endpoints for the monthly payment tracker and balance reconciliation.
'''
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..models import reconciliation as rec_models
from ..services.reconciliation_service import BalanceReconciliationService, PaymentTrackerService

class PaymentTrackerAPI:
    """
    A class to encapsulate endpoints for saved payment reports.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/payment-tracker",
            tags=["Payment Tracker"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.save_modified_report,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=rec_models.PaymentTrackerSaveResponse)
        self.router.add_api_route(
                "/",
                self.list_saved_reports,
                methods=["GET"],
                response_model=list[rec_models.PaymentTrackerSummaryRead])
        self.router.add_api_route(
                "/special",
                self.list_special_saved_reports,
                methods=["GET"],
                response_model=list[rec_models.PaymentTrackerSummaryRead])
        self.router.add_api_route(
                "/{tracker_id}",
                self.get_saved_report,
                methods=["GET"],
                response_model=rec_models.PaymentTrackerRead)

    async def save_modified_report(
        self,
        tracker_data: rec_models.PaymentTrackerCreate,
        tracker_service: Annotated[PaymentTrackerService, Depends(PaymentTrackerService)]
    ) -> Any:
        """
        Saves a modified monthly report and reconciles enrollment balances from it.
        """
        return await tracker_service.save_modified_report(tracker_data)

    async def list_saved_reports(
        self,
        tracker_service: Annotated[PaymentTrackerService, Depends(PaymentTrackerService)]
    ) -> list[Any]:
        return await tracker_service.list_saved_reports()

    async def list_special_saved_reports(
        self,
        tracker_service: Annotated[PaymentTrackerService, Depends(PaymentTrackerService)]
    ) -> list[Any]:
        return await tracker_service.list_special_saved_reports()

    async def get_saved_report(
        self,
        tracker_id: UUID,
        tracker_service: Annotated[PaymentTrackerService, Depends(PaymentTrackerService)]
    ) -> Any:
        """
        Retrieves a saved report with all of its fragments.
        """
        return await tracker_service.get_saved_report(tracker_id)


class ReconciliationAPI:
    """
    A class to encapsulate the direct reconciliation endpoint.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/reconciliations",
            tags=["Reconciliation"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/",
                self.apply_reconciliation,
                methods=["POST"],
                response_model=rec_models.ReconciliationResult)

    async def apply_reconciliation(
        self,
        request: rec_models.ReconciliationRequest,
        reconciliation_service: Annotated[BalanceReconciliationService, Depends(BalanceReconciliationService)]
    ) -> Any:
        """
        Applies the balance directives of the given fragments without saving a tracker record.
        """
        return await reconciliation_service.apply_reconciliation(request)

# Instantiate the classes and export their routers
payment_tracker_api = PaymentTrackerAPI()
router = payment_tracker_api.router
reconciliation_api = ReconciliationAPI()
reconciliation_router = reconciliation_api.router
