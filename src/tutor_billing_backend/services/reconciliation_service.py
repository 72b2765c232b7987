'''
Balance reconciliation and the monthly payment tracker.
'''
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.reconciliation import RECONCILIATION_TIERS, iter_detail_entries, is_directive, normalize_directive, raw_enrollment_id
from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import BalanceSource
from ..models import reconciliation as rec_models
from ..common.exceptions import EnrollmentNotFoundError
from ..common.logger import log
from .enrollment_service import EnrollmentService

# --- Service 1: Balance Reconciliation ---

class BalanceReconciliationService:
    """
    Applies the balance directives of up to three report fragments to the
    enrollments, tier by tier (general report, special-professor report,
    excedents). Later tiers overwrite earlier ones for the same enrollment.
    Every write is isolated: a failure is recorded and the run continues.
    No rollback of completed writes.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        enrollment_service: Annotated[EnrollmentService, Depends(EnrollmentService)]
    ):
        self.db = db
        self.enrollment_service = enrollment_service

    async def _apply_entry(self, entry: dict, source: BalanceSource, result: rec_models.ReconciliationResult):
        raw_id = raw_enrollment_id(entry)
        try:
            directive = rec_models.BalanceDirective.model_validate(normalize_directive(entry))
        except ValidationError as e:
            message = f"Invalid balance directive for enrollment {raw_id}: {e.errors()[0]['msg']}"
            log.warning(f"[{source.value}] {message}")
            result.errors.append(rec_models.BalanceUpdateError(enrollment_id=raw_id, source=source, message=message))
            return

        try:
            async with self.db.begin_nested():
                old_balance, _ = await self.enrollment_service.update_enrollment_balance(
                    directive.enrollment_id, directive.new_balance
                )
        except EnrollmentNotFoundError as e:
            log.warning(f"[{source.value}] {e}")
            result.errors.append(rec_models.BalanceUpdateError(enrollment_id=raw_id, source=source, message=str(e)))
            return
        except SQLAlchemyError as e:
            message = f"Error updating enrollment {directive.enrollment_id}: {e}"
            log.error(f"[{source.value}] {message}", exc_info=True)
            result.errors.append(rec_models.BalanceUpdateError(enrollment_id=raw_id, source=source, message=message))
            return

        log.info(f"[{source.value}] Enrollment {directive.enrollment_id} balance: {old_balance} -> {directive.new_balance}")
        result.updated.append(rec_models.BalanceUpdate(
            enrollment_id=directive.enrollment_id,
            old_balance=old_balance,
            new_balance=directive.new_balance,
            source=source
        ))

    async def reconcile_balances(
        self,
        report: Any = None,
        special_professor_report: Any = None,
        excedents: Any = None
    ) -> rec_models.ReconciliationResult:
        """
        Applies every tier in priority order and returns the tally.
        Entries lacking an enrollment id or a balance are not directives and are ignored.
        """
        fragments = dict(zip(RECONCILIATION_TIERS, (report, special_professor_report, excedents)))
        result = rec_models.ReconciliationResult()

        for source in RECONCILIATION_TIERS:
            entries = [entry for entry in iter_detail_entries(fragments[source]) if is_directive(entry)]
            log.info(f"Processing {len(entries)} balance directives from '{source.value}'...")
            for entry in entries:
                await self._apply_entry(entry, source, result)

        log.info(f"Balance reconciliation summary: {result.total_updated} enrollments updated, {result.total_errors} errors.")
        return result

    async def apply_reconciliation(self, request: rec_models.ReconciliationRequest) -> rec_models.ReconciliationResult:
        return await self.reconcile_balances(
            request.report,
            request.special_professor_report,
            request.excedents
        )

# --- Service 2: Payment Tracker ---

class PaymentTrackerService:
    """Write-once monthly snapshots of the reports an operator closed, and the reconciliation they trigger."""
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        reconciliation_service: Annotated[BalanceReconciliationService, Depends(BalanceReconciliationService)]
    ):
        self.db = db
        self.reconciliation_service = reconciliation_service

    async def save_modified_report(self, data: rec_models.PaymentTrackerCreate) -> rec_models.PaymentTrackerSaveResponse:
        """
        Persists the snapshot, then reconciles enrollment balances from its
        three fragments. Reconciliation failures are reported, not raised.
        """
        log.info(f"Saving payment tracker record for {data.month}.")
        values = dict(
            month=data.month,
            report=jsonable_encoder(data.report),
            special_professor_report=jsonable_encoder(data.special_professor_report),
            excedents=jsonable_encoder(data.excedents) if data.excedents is not None else {},
            summary=jsonable_encoder(data.summary) if data.summary is not None else {},
            record_special=data.record_special
        )
        if data.date_report is not None:
            values['date_report'] = data.date_report

        tracker = db_models.GeneralPaymentTracker(**values)
        self.db.add(tracker)
        await self.db.flush()
        await self.db.refresh(tracker)

        log.info("Starting enrollment balance reconciliation...")
        balance_updates = await self.reconciliation_service.reconcile_balances(
            data.report,
            data.special_professor_report,
            data.excedents
        )
        if balance_updates.total_errors:
            log.warning(f"Reconciliation for {data.month} finished with {balance_updates.total_errors} errors.")

        return rec_models.PaymentTrackerSaveResponse(
            message="Modified payment report saved successfully.",
            tracker=rec_models.PaymentTrackerRead.model_validate(tracker),
            balance_updates=balance_updates
        )

    async def list_saved_reports(self) -> list[rec_models.PaymentTrackerSummaryRead]:
        stmt = select(db_models.GeneralPaymentTracker).order_by(db_models.GeneralPaymentTracker.created_at.asc())
        result = await self.db.execute(stmt)
        return [rec_models.PaymentTrackerSummaryRead.model_validate(t) for t in result.scalars().all()]

    async def list_special_saved_reports(self) -> list[rec_models.PaymentTrackerSummaryRead]:
        stmt = select(db_models.GeneralPaymentTracker).filter(
            db_models.GeneralPaymentTracker.record_special == 1
        ).order_by(db_models.GeneralPaymentTracker.created_at.asc())
        result = await self.db.execute(stmt)
        return [rec_models.PaymentTrackerSummaryRead.model_validate(t) for t in result.scalars().all()]

    async def get_saved_report(self, tracker_id: UUID) -> rec_models.PaymentTrackerRead:
        tracker = await self.db.get(db_models.GeneralPaymentTracker, tracker_id)
        if tracker is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved payment report not found.")
        return rec_models.PaymentTrackerRead.model_validate(tracker)
