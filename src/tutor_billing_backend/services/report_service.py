'''
Professor payment reports: one line per enrollment with hours seen, the
amount billed for them, what the professor is owed, and the balance the
enrollment carries into the next month.
'''
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status

from ..core import billing
from ..core.billing import MonthWindow, LineFigures
from ..database import models as db_models
from ..database.db_enums import EnrollmentWindowPolicy
from ..models import reports as report_models
from ..common.exceptions import InvalidMonthError
from ..common.logger import log
from ..common.config import settings
from .enrollment_service import EnrollmentService
from .attendance_service import AttendanceService


class ReportService:
    """
    Builds monthly payment reports for a professor, for the designated
    special professor, and for every other professor at once.
    """
    def __init__(
        self,
        enrollment_service: Annotated[EnrollmentService, Depends(EnrollmentService)],
        attendance_service: Annotated[AttendanceService, Depends(AttendanceService)]
    ):
        self.enrollment_service = enrollment_service
        self.attendance_service = attendance_service

    # --- 1. Helpers ---

    @staticmethod
    def _parse_month(month: str) -> MonthWindow:
        try:
            return billing.parse_month(month)
        except InvalidMonthError as e:
            log.warning(f"Rejected report request: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @property
    def window_policy(self) -> EnrollmentWindowPolicy:
        return settings.ENROLLMENT_WINDOW_POLICY

    def _money(self, value: Decimal) -> Decimal:
        return billing.round_money(value, settings.REPORT_CURRENCY_DECIMALS)

    def _build_line(
        self,
        enrollment: db_models.Enrollments,
        figures: LineFigures,
        window: MonthWindow
    ) -> report_models.ReportLine:
        student_names = [link.student.name if link.student else None for link in enrollment.enrollment_students]
        return report_models.ReportLine(
            enrollment_id=enrollment.id,
            period=billing.period_label(window),
            plan=billing.plan_label(enrollment.enrollment_type, enrollment.plan.name),
            student_name=billing.student_label(enrollment.alias, student_names),
            amount=self._money(figures.amount),
            total_hours=figures.total_normal_classes,
            hours_seen=billing.round_money(figures.hours_seen, billing.HOURS_DECIMALS),
            price_per_hour=self._money(figures.price_per_hour),
            pay_per_hour=self._money(figures.pay_rate),
            old_balance=self._money(figures.old_balance),
            payment=self._money(figures.payment),
            total=self._money(figures.total),
            balance_remaining=self._money(figures.balance_remaining)
        )

    async def _compute_enrollment(
        self,
        enrollment: db_models.Enrollments,
        window: MonthWindow
    ) -> LineFigures:
        hours_seen = await self.attendance_service.aggregate_hours_seen(enrollment.id, window)
        total_normal_classes = await self.enrollment_service.count_normal_classes(enrollment.id)

        professor_type = enrollment.professor.professor_type
        if professor_type is None:
            log.warning(f"Enrollment {enrollment.id}: professor {enrollment.professor_id} has no professor type. Pay rate defaults to 0.")

        return billing.compute_line_figures(
            enrollment_type=enrollment.enrollment_type,
            available_balance=enrollment.available_balance,
            total_amount=enrollment.total_amount,
            pricing=enrollment.plan.pricing,
            rates=professor_type.rates if professor_type else None,
            hours_seen=hours_seen,
            total_normal_classes=total_normal_classes
        )

    async def _build_abonos(self, professor_id: UUID, month: str) -> report_models.Abonos:
        bonuses = await self.enrollment_service.find_active_bonuses(professor_id, month)
        total = sum((Decimal(b.amount) for b in bonuses), Decimal(0))
        return report_models.Abonos(
            total=self._money(total),
            details=[report_models.BonusDetail.model_validate(b) for b in bonuses]
        )

    # --- 2. Report Builder ---

    async def build_report(self, professor: db_models.Professors, window: MonthWindow) -> report_models.ProfessorReport:
        """
        Builds the report of one professor for a resolved month.
        Enrollments missing their plan or professor are skipped with a warning.
        """
        log.info(f"Building payment report for professor {professor.id} ({professor.name}) for {window.month}.")
        enrollments = await self.enrollment_service.find_active_enrollments(professor.id, window, self.window_policy)

        lines: list[report_models.ReportLine] = []
        subtotal_total = Decimal(0)
        subtotal_balance = Decimal(0)
        subtotal_payment = Decimal(0)

        for enrollment in enrollments:
            if enrollment.plan is None:
                log.warning(f"Skipping enrollment {enrollment.id} due to missing plan info.")
                continue
            if enrollment.professor is None:
                log.warning(f"Skipping enrollment {enrollment.id} due to missing professor info.")
                continue

            figures = await self._compute_enrollment(enrollment, window)
            lines.append(self._build_line(enrollment, figures, window))
            subtotal_total += figures.total
            subtotal_balance += figures.balance_remaining
            subtotal_payment += figures.payment

        abonos = await self._build_abonos(professor.id, window.month)

        return report_models.ProfessorReport(
            professor_id=professor.id,
            professor_name=professor.name or 'Unknown Professor',
            month=window.month,
            date_range_label=billing.date_range_label(window),
            lines=billing.sort_report_lines(lines),
            subtotal=report_models.ReportSubtotal(
                total=self._money(subtotal_total),
                balance_remaining=self._money(subtotal_balance),
                payment=self._money(subtotal_payment)
            ),
            abonos=abonos
        )

    # --- 3. API-Facing Methods ---

    async def generate_report(self, professor_id: UUID, month: str) -> report_models.ProfessorReport:
        window = self._parse_month(month)
        professor = await self.enrollment_service.get_professor(professor_id)
        if professor is None:
            log.warning(f"Tried to build a report for non-existent professor {professor_id}.")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Professor not found.")
        return await self.build_report(professor, window)

    async def generate_special_professor_report(self, month: str) -> report_models.ProfessorReport:
        """The report of the professor configured as SPECIAL_PROFESSOR_ID."""
        window = self._parse_month(month)
        special_id = settings.SPECIAL_PROFESSOR_ID
        if special_id is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No special professor is configured.")
        professor = await self.enrollment_service.get_professor(special_id)
        if professor is None:
            log.error(f"Configured special professor {special_id} does not exist.")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Special professor not found.")
        return await self.build_report(professor, window)

    async def generate_general_report(self, month: str) -> list[report_models.ProfessorReport]:
        """
        One report per professor with at least one line in the month,
        leaving out the special professor. Ordered by professor name.
        """
        window = self._parse_month(month)
        professors = await self.enrollment_service.find_professors_with_active_enrollments(
            window,
            self.window_policy,
            exclude_professor_id=settings.SPECIAL_PROFESSOR_ID
        )

        reports = []
        for professor in sorted(professors, key=lambda p: billing.collation_key(p.name)):
            report = await self.build_report(professor, window)
            if report.lines:
                reports.append(report)
        log.info(f"General report for {month}: {len(reports)} professors.")
        return reports
