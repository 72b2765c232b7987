'''
Attendance aggregation over the class registry.
'''
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import Depends

from ..core.attendance import sum_hours_seen, ZERO_HOURS
from ..core.billing import MonthWindow
from ..database.db_enums import ClassViewed, RescheduleStatus
from ..common.logger import log
from .enrollment_service import EnrollmentService

ATTENDED = (ClassViewed.VIEWED.value, ClassViewed.PARTIALLY_VIEWED.value)
RESCHEDULED = (RescheduleStatus.PENDING.value, RescheduleStatus.VIEWED.value)


class AttendanceService:
    def __init__(self, enrollment_service: Annotated[EnrollmentService, Depends(EnrollmentService)]):
        self.enrollment_service = enrollment_service

    async def aggregate_hours_seen(self, enrollment_id: UUID, window: MonthWindow) -> Decimal:
        """
        Billable hours seen by an enrollment in the month.

        1. Normal classes in the month that were at least partially attended.
        2. Reschedules in the month that point at one of those classes.
        3. Each normal class is bucketed together with its reschedules.

        A reschedule whose original class lies in another month is not counted.
        """
        normal_classes = await self.enrollment_service.find_class_registry(
            enrollment_id,
            window=window,
            reschedule_in=[RescheduleStatus.NORMAL.value],
            class_viewed_in=ATTENDED
        )
        if not normal_classes:
            return ZERO_HOURS

        reschedules = await self.enrollment_service.find_class_registry(
            enrollment_id,
            window=window,
            reschedule_in=RESCHEDULED,
            original_class_ids=[c.id for c in normal_classes]
        )

        hours_seen = sum_hours_seen(normal_classes, reschedules)
        log.info(
            f"Enrollment {enrollment_id}: {len(normal_classes)} attended classes, "
            f"{len(reschedules)} reschedules, {hours_seen}h seen in {window.month}."
        )
        return hours_seen
