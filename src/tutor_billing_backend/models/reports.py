'''
API models for professor payment reports.
'''
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field


class ReportLine(BaseModel):
    """
    One enrollment's billing line for the month.
    Monetary values are rounded to 2 decimals for presentation.
    """
    enrollment_id: UUID
    period: str
    plan: str
    student_name: str
    amount: Decimal
    total_hours: int
    hours_seen: Decimal
    price_per_hour: Decimal
    pay_per_hour: Decimal
    old_balance: Decimal
    payment: Decimal
    total: Decimal
    balance_remaining: Decimal


class ReportSubtotal(BaseModel):
    total: Decimal
    balance_remaining: Decimal
    payment: Decimal


class BonusDetail(BaseModel):
    """A manual credit ('abono') entered for the professor for this month."""
    id: UUID
    amount: Decimal
    description: Optional[str] = None
    bonus_date: date
    month: str

    model_config = ConfigDict(from_attributes=True)


class Abonos(BaseModel):
    total: Decimal
    details: list[BonusDetail]


class ProfessorReport(BaseModel):
    """The payment report of one professor for one closed month."""
    professor_id: UUID
    professor_name: str
    month: str
    date_range_label: str
    lines: list[ReportLine]
    subtotal: ReportSubtotal
    abonos: Abonos

    @computed_field
    @property
    def is_empty(self) -> bool:
        return not self.lines
