'''
Attendance arithmetic: turns attended minutes into billable fractional hours.

Partial attendance is billed in quarter-hour steps. Minutes of a rescheduled
occurrence are added to the class they reschedule before bucketing, so a
lesson split across two dates still counts as a single billable unit.
'''
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Protocol
from uuid import UUID

ZERO_HOURS = Decimal("0")

# (upper bound in minutes, inclusive) -> hours
FRACTIONAL_HOUR_BUCKETS: tuple[tuple[int, Decimal], ...] = (
    (15, Decimal("0.25")),
    (30, Decimal("0.5")),
    (45, Decimal("0.75")),
)
FULL_HOUR = Decimal("1.0")


class NormalClass(Protocol):
    id: UUID
    minutes_viewed: int


class RescheduledClass(Protocol):
    original_class_id: UUID | None
    minutes_viewed: int


def minutes_to_fractional_hours(minutes: int | None) -> Decimal:
    """
    Buckets attended minutes into 0, 0.25, 0.5, 0.75 or 1.0 hours.
    Anything above 45 minutes is a full hour.
    """
    if not minutes or minutes <= 0:
        return ZERO_HOURS
    for upper_bound, hours in FRACTIONAL_HOUR_BUCKETS:
        if minutes <= upper_bound:
            return hours
    return FULL_HOUR


def group_reschedules(reschedules: Iterable[RescheduledClass]) -> dict[UUID, list[RescheduledClass]]:
    """Groups reschedule occurrences by the normal class they point back to."""
    grouped: dict[UUID, list[RescheduledClass]] = defaultdict(list)
    for reschedule in reschedules:
        if reschedule.original_class_id is not None:
            grouped[reschedule.original_class_id].append(reschedule)
    return dict(grouped)


def total_minutes_for_class(normal_class: NormalClass, reschedules: Iterable[RescheduledClass]) -> int:
    return (normal_class.minutes_viewed or 0) + sum(r.minutes_viewed or 0 for r in reschedules)


def sum_hours_seen(
    normal_classes: Iterable[NormalClass],
    reschedules: Iterable[RescheduledClass]
) -> Decimal:
    """
    Sums the bucketed hours of every normal class, each one folded together
    with the reschedule occurrences that reference it.
    Reschedules whose original class is not in `normal_classes` are ignored.
    """
    grouped = group_reschedules(reschedules)
    hours_seen = ZERO_HOURS
    for normal_class in normal_classes:
        minutes = total_minutes_for_class(normal_class, grouped.get(normal_class.id, []))
        hours_seen += minutes_to_fractional_hours(minutes)
    return hours_seen
