'''
Static enums for the codes stored in the billing tables.
'''
import enum

# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member values."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class EnrollmentType(ListableEnum):
    SINGLE = 'single'
    COUPLE = 'couple'
    GROUP = 'group'

class EnrollmentStatus(ListableEnum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'

class BonusStatus(ListableEnum):
    ACTIVE = 'active'
    VOID = 'void'

class BalanceSource(ListableEnum):
    """The three reconciliation tiers, lowest priority first."""
    REPORT = 'report'
    SPECIAL_PROFESSOR_REPORT = 'specialProfessorReport'
    EXCEDENTS = 'excedents'

class EnrollmentWindowPolicy(ListableEnum):
    """
    Which enrollments belong to a report month.
    BOUNDARY: the enrollment starts or ends inside the month.
    OVERLAP: the enrollment is active at any point of the month.
    """
    BOUNDARY = 'boundary'
    OVERLAP = 'overlap'


class ClassViewed(enum.IntEnum):
    NOT_VIEWED = 0
    VIEWED = 1
    PARTIALLY_VIEWED = 2

class RescheduleStatus(enum.IntEnum):
    NORMAL = 0
    PENDING = 1
    VIEWED = 2
