'''
Models for balance reconciliation and the monthly payment tracker.
'''
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator

from ..core.billing import parse_month
from ..database.db_enums import BalanceSource
from ..common.exceptions import InvalidMonthError

MONTH_REGEX = r"^\d{4}-\d{2}$"

# --- 1. Directives & Results ---

class BalanceDirective(BaseModel):
    """
    A `{enrollmentId, newBalance}` instruction read from a fragment's details.
    The balance travels under the 'balancereamaining' key in saved reports.
    """
    enrollment_id: UUID = Field(validation_alias=AliasChoices('enrollmentId', 'enrollment_id'))
    new_balance: Decimal = Field(validation_alias=AliasChoices(
        'balancereamaining', 'balanceRemaining', 'balance_remaining', 'newBalance', 'new_balance'
    ))


class BalanceUpdate(BaseModel):
    enrollment_id: UUID
    old_balance: Decimal
    new_balance: Decimal
    source: BalanceSource


class BalanceUpdateError(BaseModel):
    enrollment_id: Optional[str] = None
    source: BalanceSource
    message: str


class ReconciliationResult(BaseModel):
    """Tally of one reconciliation run. `updated` keeps application order."""
    updated: list[BalanceUpdate] = []
    errors: list[BalanceUpdateError] = []

    @computed_field
    @property
    def success(self) -> bool:
        return not self.errors

    @computed_field
    @property
    def total_updated(self) -> int:
        return len(self.updated)

    @computed_field
    @property
    def total_errors(self) -> int:
        return len(self.errors)


class ReconciliationRequest(BaseModel):
    """The three report fragments, each optional."""
    report: Optional[Any] = Field(default=None, validation_alias=AliasChoices('report', 'generalReport', 'general_report'))
    special_professor_report: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices('specialProfessorReport', 'special_professor_report')
    )
    excedents: Optional[Any] = None

# --- 2. Payment Tracker ---

class PaymentTrackerCreate(BaseModel):
    """
    Validates the request body for saving a modified monthly report.
    """
    month: str = Field(pattern=MONTH_REGEX)
    report: Any
    special_professor_report: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices('specialProfessorReport', 'special_professor_report')
    )
    excedents: Optional[Any] = None
    summary: Optional[Any] = None
    record_special: int = 0
    date_report: Optional[datetime] = None

    @field_validator("month")
    @classmethod
    def month_must_exist(cls, value: str) -> str:
        try:
            parse_month(value)
        except InvalidMonthError as e:
            raise ValueError(str(e))
        return value


class PaymentTrackerSummaryRead(BaseModel):
    id: UUID
    month: str
    record_special: int

    model_config = ConfigDict(from_attributes=True)


class PaymentTrackerRead(BaseModel):
    id: UUID
    month: str
    report: Optional[Any] = None
    special_professor_report: Optional[Any] = None
    excedents: Optional[Any] = None
    summary: Optional[Any] = None
    record_special: int
    date_report: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentTrackerSaveResponse(BaseModel):
    message: str
    tracker: PaymentTrackerRead
    balance_updates: ReconciliationResult
