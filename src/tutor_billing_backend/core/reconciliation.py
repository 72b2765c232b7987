'''
Reading balance directives out of report fragments.

A fragment is whatever payload a report pass produced: the general report
is a list of professor reports, the special-professor report and the
excedents are single objects. Only their `details` entries matter here.
'''
from typing import Any, Iterator, Optional

from ..database.db_enums import BalanceSource

ENROLLMENT_ID_KEYS = ('enrollmentId', 'enrollment_id')
BALANCE_KEYS = ('balancereamaining', 'balanceRemaining', 'balance_remaining', 'newBalance', 'new_balance')
DETAIL_KEYS = ('details', 'lines')

# Lowest priority first; later tiers overwrite earlier ones.
RECONCILIATION_TIERS: tuple[BalanceSource, ...] = (
    BalanceSource.REPORT,
    BalanceSource.SPECIAL_PROFESSOR_REPORT,
    BalanceSource.EXCEDENTS,
)


def _first_present(entry: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


def _details_of(block: Any) -> list:
    if not isinstance(block, dict):
        return []
    for key in DETAIL_KEYS:
        details = block.get(key)
        if isinstance(details, list):
            return details
    return []


def iter_detail_entries(fragment: Any) -> Iterator[dict]:
    """
    Yields every detail entry of a fragment, in document order.
    Accepts None, a single object with details, or a list of such objects.
    """
    if fragment is None:
        return
    blocks = fragment if isinstance(fragment, list) else [fragment]
    for block in blocks:
        for entry in _details_of(block):
            if isinstance(entry, dict):
                yield entry


def is_directive(entry: dict) -> bool:
    """An entry is a balance directive only when it carries both an enrollment id and a balance."""
    return (
        _first_present(entry, ENROLLMENT_ID_KEYS) is not None
        and _first_present(entry, BALANCE_KEYS) is not None
    )


def raw_enrollment_id(entry: dict) -> Optional[str]:
    value = _first_present(entry, ENROLLMENT_ID_KEYS)
    return None if value is None else str(value)


def normalize_directive(entry: dict) -> dict:
    """The entry reduced to `{enrollment_id, new_balance}`, each taken from the first key holding a value."""
    return {
        "enrollment_id": _first_present(entry, ENROLLMENT_ID_KEYS),
        "new_balance": _first_present(entry, BALANCE_KEYS),
    }
