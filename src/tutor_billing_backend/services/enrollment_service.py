'''
Read and write access to enrollment, attendance, plan, rate and bonus
records needed by the billing reports and the balance reconciliation.
'''
from decimal import Decimal
from typing import Annotated, Iterable, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import BonusStatus, EnrollmentStatus, EnrollmentWindowPolicy, RescheduleStatus
from ..core.billing import MonthWindow
from ..common.exceptions import EnrollmentNotFoundError
from ..common.logger import log


class EnrollmentService:
    """
    Query and write capabilities over the enrollment store.
    This service is the only writer of `Enrollments.balance` and
    `Enrollments.penalization_count`.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- 1. Helpers ---

    @staticmethod
    def _window_clause(window: MonthWindow, policy: EnrollmentWindowPolicy):
        """SQL counterpart of core.billing.enrollment_in_window."""
        if policy == EnrollmentWindowPolicy.OVERLAP:
            return and_(
                db_models.Enrollments.start_date <= window.end,
                db_models.Enrollments.end_date >= window.start
            )
        return or_(
            db_models.Enrollments.start_date.between(window.start, window.end),
            db_models.Enrollments.end_date.between(window.start, window.end)
        )

    # --- 2. Read Capabilities ---

    async def find_active_enrollments(
        self,
        professor_id: UUID,
        window: MonthWindow,
        policy: EnrollmentWindowPolicy = EnrollmentWindowPolicy.BOUNDARY
    ) -> list[db_models.Enrollments]:
        """
        Fetches the professor's active enrollments that fall in the month
        according to `policy`, with plan, professor type and students loaded.
        """
        log.info(f"Fetching active enrollments for professor {professor_id} in {window.month} (policy: {policy.value}).")
        stmt = select(db_models.Enrollments).options(
            selectinload(db_models.Enrollments.plan),
            selectinload(db_models.Enrollments.professor).selectinload(db_models.Professors.professor_type),
            selectinload(db_models.Enrollments.enrollment_students).selectinload(db_models.EnrollmentStudents.student)
        ).filter(
            db_models.Enrollments.professor_id == professor_id,
            db_models.Enrollments.status == EnrollmentStatus.ACTIVE.value,
            self._window_clause(window, policy)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def find_professors_with_active_enrollments(
        self,
        window: MonthWindow,
        policy: EnrollmentWindowPolicy = EnrollmentWindowPolicy.BOUNDARY,
        exclude_professor_id: Optional[UUID] = None
    ) -> list[db_models.Professors]:
        """Professors that own at least one active enrollment in the month."""
        stmt = select(db_models.Professors).join(
            db_models.Enrollments,
            db_models.Enrollments.professor_id == db_models.Professors.id
        ).filter(
            db_models.Enrollments.status == EnrollmentStatus.ACTIVE.value,
            self._window_clause(window, policy)
        ).distinct()
        if exclude_professor_id is not None:
            stmt = stmt.filter(db_models.Professors.id != exclude_professor_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_professor(self, professor_id: UUID) -> Optional[db_models.Professors]:
        return await self.db.get(db_models.Professors, professor_id)

    async def find_plan(self, plan_id: UUID) -> Optional[db_models.Plans]:
        return await self.db.get(db_models.Plans, plan_id)

    async def find_professor_type(self, type_id: UUID) -> Optional[db_models.ProfessorTypes]:
        return await self.db.get(db_models.ProfessorTypes, type_id)

    async def find_class_registry(
        self,
        enrollment_id: UUID,
        window: Optional[MonthWindow] = None,
        reschedule_in: Optional[Iterable[int]] = None,
        class_viewed_in: Optional[Iterable[int]] = None,
        original_class_ids: Optional[Iterable[UUID]] = None
    ) -> list[db_models.ClassRegistry]:
        """
        Fetches the enrollment's class records, optionally restricted to a
        month (class_date is an ISO string, so the bounds compare as text)
        and to reschedule / attendance codes / original classes.
        """
        stmt = select(db_models.ClassRegistry).filter(
            db_models.ClassRegistry.enrollment_id == enrollment_id
        )
        if window is not None:
            stmt = stmt.filter(db_models.ClassRegistry.class_date.between(window.start_str, window.end_str))
        if reschedule_in is not None:
            stmt = stmt.filter(db_models.ClassRegistry.reschedule.in_(list(reschedule_in)))
        if class_viewed_in is not None:
            stmt = stmt.filter(db_models.ClassRegistry.class_viewed.in_(list(class_viewed_in)))
        if original_class_ids is not None:
            stmt = stmt.filter(db_models.ClassRegistry.original_class_id.in_(list(original_class_ids)))
        stmt = stmt.order_by(db_models.ClassRegistry.class_date.asc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_normal_classes(self, enrollment_id: UUID) -> int:
        """Counts every normal (non-reschedule) class of the enrollment, across all months."""
        stmt = select(func.count(db_models.ClassRegistry.id)).filter(
            db_models.ClassRegistry.enrollment_id == enrollment_id,
            db_models.ClassRegistry.reschedule == RescheduleStatus.NORMAL.value
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def find_active_bonuses(self, professor_id: UUID, month: str) -> list[db_models.ProfessorBonuses]:
        stmt = select(db_models.ProfessorBonuses).filter(
            db_models.ProfessorBonuses.professor_id == professor_id,
            db_models.ProfessorBonuses.month == month,
            db_models.ProfessorBonuses.status == BonusStatus.ACTIVE.value
        ).order_by(db_models.ProfessorBonuses.bonus_date.asc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # --- 3. Write Capabilities ---

    async def update_enrollment_balance(self, enrollment_id: UUID, new_balance: Decimal) -> tuple[Decimal, db_models.Enrollments]:
        """
        Overwrites the enrollment's carried balance.
        Returns the previous balance and the updated enrollment.
        Raises EnrollmentNotFoundError if the id does not exist.
        """
        enrollment = await self.db.get(db_models.Enrollments, enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(f"Enrollment not found: {enrollment_id}")
        old_balance = enrollment.balance
        enrollment.balance = new_balance
        await self.db.flush()
        return old_balance, enrollment

    async def apply_penalization_transition(self, enrollment_id: UUID, was_active: bool, is_active: bool) -> int:
        """
        Keeps `penalization_count` in step with a penalization's status change:
        +1 when it becomes active, -1 when it stops being active (never below 0).
        Returns the resulting count.
        """
        enrollment = await self.db.get(db_models.Enrollments, enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError(f"Enrollment not found: {enrollment_id}")

        if is_active and not was_active:
            enrollment.penalization_count = (enrollment.penalization_count or 0) + 1
        elif was_active and not is_active:
            enrollment.penalization_count = max(0, (enrollment.penalization_count or 0) - 1)
        else:
            return enrollment.penalization_count

        log.info(f"Enrollment {enrollment_id} penalization count is now {enrollment.penalization_count}.")
        await self.db.flush()
        return enrollment.penalization_count
