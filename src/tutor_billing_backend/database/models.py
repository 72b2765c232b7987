from typing import Any, Optional

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKeyConstraint, Index, Integer, JSON, Numeric, PrimaryKeyConstraint, SmallInteger, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from .db_enums import EnrollmentStatus, BonusStatus

def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)

class Base(DeclarativeBase):
    pass


class ProfessorTypes(Base):
    __tablename__ = 'professor_types'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='professor_types_pkey'),
        UniqueConstraint('name', name='professor_types_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    # {enrollment_type: pay per hour}
    rates: Mapped[dict] = mapped_column(JSON, default=dict)

    professors: Mapped[list['Professors']] = relationship('Professors', back_populates='professor_type')


class Professors(Base):
    __tablename__ = 'professors'
    __table_args__ = (
        ForeignKeyConstraint(['professor_type_id'], ['professor_types.id'], name='professors_professor_type_id_fkey'),
        PrimaryKeyConstraint('id', name='professors_pkey')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    ci_number: Mapped[Optional[str]] = mapped_column(Text)
    professor_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    professor_type: Mapped[Optional['ProfessorTypes']] = relationship('ProfessorTypes', back_populates='professors')
    enrollments: Mapped[list['Enrollments']] = relationship('Enrollments', back_populates='professor')
    bonuses: Mapped[list['ProfessorBonuses']] = relationship('ProfessorBonuses', back_populates='professor')


class Students(Base):
    __tablename__ = 'students'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='students_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    student_code: Mapped[Optional[str]] = mapped_column(Text)


class Plans(Base):
    __tablename__ = 'plans'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='plans_pkey'),
        UniqueConstraint('name', name='plans_name_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    monthly_classes: Mapped[int] = mapped_column(Integer, default=0)
    # {enrollment_type: price for the period}
    pricing: Mapped[dict] = mapped_column(JSON, default=dict)


class Enrollments(Base):
    __tablename__ = 'enrollments'
    __table_args__ = (
        CheckConstraint('available_balance >= 0', name='enrollments_available_balance_check'),
        CheckConstraint('total_amount >= 0', name='enrollments_total_amount_check'),
        ForeignKeyConstraint(['professor_id'], ['professors.id'], name='enrollments_professor_id_fkey'),
        ForeignKeyConstraint(['plan_id'], ['plans.id'], name='enrollments_plan_id_fkey'),
        PrimaryKeyConstraint('id', name='enrollments_pkey'),
        Index('idx_enrollments_professor_status', 'professor_id', 'status')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Both references are nullable: legacy rows can lose their professor or plan.
    professor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    enrollment_type: Mapped[str] = mapped_column(String(16))
    alias: Mapped[Optional[str]] = mapped_column(Text)
    start_date: Mapped[datetime.date] = mapped_column(Date)
    end_date: Mapped[datetime.date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(16), default=EnrollmentStatus.ACTIVE.value)
    available_balance: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal(0))
    total_amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal(0))
    balance: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), default=decimal.Decimal(0))
    penalization_count: Mapped[int] = mapped_column(Integer, default=0)

    professor: Mapped[Optional['Professors']] = relationship('Professors', back_populates='enrollments')
    plan: Mapped[Optional['Plans']] = relationship('Plans')
    enrollment_students: Mapped[list['EnrollmentStudents']] = relationship(
        'EnrollmentStudents',
        back_populates='enrollment',
        order_by='EnrollmentStudents.position',
        cascade='all, delete-orphan'
    )


class EnrollmentStudents(Base):
    __tablename__ = 'enrollment_students'
    __table_args__ = (
        ForeignKeyConstraint(['enrollment_id'], ['enrollments.id'], ondelete='CASCADE', name='enrollment_students_enrollment_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='enrollment_students_student_id_fkey'),
        PrimaryKeyConstraint('enrollment_id', 'student_id', name='enrollment_students_pkey')
    )

    enrollment_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    enrollment: Mapped['Enrollments'] = relationship('Enrollments', back_populates='enrollment_students')
    student: Mapped['Students'] = relationship('Students')


class ClassRegistry(Base):
    __tablename__ = 'class_registry'
    __table_args__ = (
        CheckConstraint('minutes_viewed >= 0', name='class_registry_minutes_viewed_check'),
        CheckConstraint('class_viewed IN (0, 1, 2)', name='class_registry_class_viewed_check'),
        CheckConstraint('reschedule IN (0, 1, 2)', name='class_registry_reschedule_check'),
        ForeignKeyConstraint(['enrollment_id'], ['enrollments.id'], ondelete='CASCADE', name='class_registry_enrollment_id_fkey'),
        ForeignKeyConstraint(['original_class_id'], ['class_registry.id'], name='class_registry_original_class_id_fkey'),
        PrimaryKeyConstraint('id', name='class_registry_pkey'),
        Index('idx_class_registry_enrollment_date', 'enrollment_id', 'class_date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    enrollment_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    # YYYY-MM-DD, compared lexicographically
    class_date: Mapped[str] = mapped_column(String(10))
    class_viewed: Mapped[int] = mapped_column(SmallInteger, default=0)
    minutes_viewed: Mapped[int] = mapped_column(Integer, default=0)
    reschedule: Mapped[int] = mapped_column(SmallInteger, default=0)
    original_class_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)


class ProfessorBonuses(Base):
    __tablename__ = 'professor_bonuses'
    __table_args__ = (
        CheckConstraint('amount >= 0', name='professor_bonuses_amount_check'),
        ForeignKeyConstraint(['professor_id'], ['professors.id'], name='professor_bonuses_professor_id_fkey'),
        PrimaryKeyConstraint('id', name='professor_bonuses_pkey'),
        Index('idx_professor_bonuses_professor_month', 'professor_id', 'month')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    professor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    description: Mapped[Optional[str]] = mapped_column(Text)
    bonus_date: Mapped[datetime.date] = mapped_column(Date)
    # YYYY-MM
    month: Mapped[str] = mapped_column(String(7))
    status: Mapped[str] = mapped_column(String(16), default=BonusStatus.ACTIVE.value)

    professor: Mapped['Professors'] = relationship('Professors', back_populates='bonuses')


class GeneralPaymentTracker(Base):
    __tablename__ = 'general_payment_tracker'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='general_payment_tracker_pkey'),
        Index('idx_general_payment_tracker_month', 'month')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    month: Mapped[str] = mapped_column(String(7))
    report: Mapped[Optional[Any]] = mapped_column(JSON)
    special_professor_report: Mapped[Optional[Any]] = mapped_column(JSON)
    excedents: Mapped[Optional[Any]] = mapped_column(JSON)
    summary: Mapped[Optional[Any]] = mapped_column(JSON)
    record_special: Mapped[int] = mapped_column(SmallInteger, default=0)
    date_report: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow)
