'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. Providing a fresh in-memory database and a rolled-back session for each test.
3. Seeding the July 2025 billing scenario shared by the service and API tests.
4. Providing an HTTP client for endpoint testing, bound to the test session.
5. Providing instances of all service classes, pre-injected with the test db session.
'''

import os
import datetime
import pytest
from decimal import Decimal
from typing import AsyncGenerator

# Force test mode before the settings object is created.
os.environ["TEST_MODE"] = "True"

# --- FastAPI & Testing Imports ---
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.pool import StaticPool

# --- Constant Imports ----
from tests.constants import (
    TEST_DATABASE_URL,
    PROF_A_ID, PROF_B_ID, SPECIAL_PROF_ID, PROF_IDLE_ID, PROF_TYPE_STANDARD_ID,
    PLAN_BASIC_ID,
    ENROLLMENT_SINGLE_ID, ENROLLMENT_COUPLE_ID, ENROLLMENT_SPANNING_ID,
    ENROLLMENT_INACTIVE_ID, ENROLLMENT_NO_PLAN_ID, ENROLLMENT_PROF_B_ID,
    ENROLLMENT_SPECIAL_ID, ENROLLMENT_IDLE_ID,
    CLASS_JUL_03_ID, CLASS_JUL_10_ID, CLASS_JUL_17_ID, RESCHEDULE_JUL_12_ID,
)
from tests.database import factories

# --- Application Imports ---
from src.tutor_billing_backend.main import app
from src.tutor_billing_backend.common.config import settings
from src.tutor_billing_backend.database.engine import get_db_session
from src.tutor_billing_backend.database import models as db_models
from src.tutor_billing_backend.database.db_enums import (
    EnrollmentType, EnrollmentStatus, BonusStatus, ClassViewed, RescheduleStatus
)
from src.tutor_billing_backend.services.enrollment_service import EnrollmentService
from src.tutor_billing_backend.services.attendance_service import AttendanceService
from src.tutor_billing_backend.services.report_service import ReportService
from src.tutor_billing_backend.services.reconciliation_service import (
    BalanceReconciliationService,
    PaymentTrackerService
)


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (aiosqlite is asyncio-only).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


def _enable_sqlite_savepoints(engine: AsyncEngine):
    """
    Lets SQLAlchemy emit BEGIN itself so that SAVEPOINT (begin_nested)
    works on sqlite. pysqlite/aiosqlite otherwise manage transactions on their own.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


# --- 1. Database Fixtures ---

@pytest.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """A brand new in-memory database with every table created."""
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    _enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(db_models.Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single, isolated, rolled-back database session.
    The factories add their objects to this session.
    """
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    factories.test_db_session = session
    try:
        yield session
    finally:
        factories.test_db_session = None
        await session.rollback()
        await session.close()


# --- 2. Seeded Scenario ---

@pytest.fixture(scope="function")
async def billing_data(db_session: AsyncSession) -> dict:
    """
    Seeds July 2025:
    - Professor A (standard rates: single 10, couple 12):
        - Single enrollment (Zoe), 100 available / 60 due. Classes: Jul 3 (60 min),
          Jul 10 (10 min) rescheduled to Jul 12 (+15 min), Jul 17 (absent),
          plus 7 attended June classes. 10 normal classes, 1.5h seen in July.
        - Couple enrollment (beatriz & Álvaro), 30 available / 60 due, no classes.
        - Spanning enrollment (alias 'Grupo Verano') Jun 1 - Aug 31, no classes.
        - Inactive enrollment and an enrollment without a plan.
        - Bonuses: 25 active, 10 void.
    - Professor B (no professor type): single enrollment, one 40 min class, 200 / 150.
    - Special professor: single enrollment, one 60 min class, 0 / 0.
    - Idle professor: an enrollment in May only.
    All enrollments use the 'Basic' plan (single 150, couple 200).

    The session is flushed and cleared so services read everything back from the database.
    """
    standard = factories.ProfessorTypeFactory(id=PROF_TYPE_STANDARD_ID, name="Standard")
    plan = factories.PlanFactory(id=PLAN_BASIC_ID, name="Basic")

    prof_a = factories.ProfessorFactory(id=PROF_A_ID, name="Ana Pérez", professor_type=standard)
    prof_b = factories.ProfessorFactory(id=PROF_B_ID, name="Bruno Díaz", professor_type=None)
    special = factories.ProfessorFactory(id=SPECIAL_PROF_ID, name="Sofía Rojas", professor_type=standard)
    idle = factories.ProfessorFactory(id=PROF_IDLE_ID, name="Carla Méndez", professor_type=standard)

    # --- Professor A ---
    single = factories.EnrollmentFactory(id=ENROLLMENT_SINGLE_ID, professor=prof_a, plan=plan)
    factories.EnrollmentStudentFactory(enrollment=single, student=factories.StudentFactory(name="Zoe"))

    factories.ClassRegistryFactory(id=CLASS_JUL_03_ID, enrollment_id=single.id, class_date="2025-07-03", minutes_viewed=60)
    factories.ClassRegistryFactory(
        id=CLASS_JUL_10_ID, enrollment_id=single.id, class_date="2025-07-10",
        class_viewed=ClassViewed.PARTIALLY_VIEWED.value, minutes_viewed=10
    )
    factories.ClassRegistryFactory(
        id=CLASS_JUL_17_ID, enrollment_id=single.id, class_date="2025-07-17",
        class_viewed=ClassViewed.NOT_VIEWED.value, minutes_viewed=0
    )
    factories.ClassRegistryFactory(
        id=RESCHEDULE_JUL_12_ID, enrollment_id=single.id, class_date="2025-07-12",
        reschedule=RescheduleStatus.VIEWED.value, minutes_viewed=15, original_class_id=CLASS_JUL_10_ID
    )
    for day in range(2, 23, 3):
        factories.ClassRegistryFactory(enrollment_id=single.id, class_date=f"2025-06-{day:02d}", minutes_viewed=60)

    couple = factories.EnrollmentFactory(
        id=ENROLLMENT_COUPLE_ID, professor=prof_a, plan=plan,
        enrollment_type=EnrollmentType.COUPLE.value,
        start_date=datetime.date(2025, 6, 15), end_date=datetime.date(2025, 7, 15),
        available_balance=Decimal("30.00"), total_amount=Decimal("60.00")
    )
    factories.EnrollmentStudentFactory(enrollment=couple, student=factories.StudentFactory(name="beatriz"), position=0)
    factories.EnrollmentStudentFactory(enrollment=couple, student=factories.StudentFactory(name="Álvaro"), position=1)

    factories.EnrollmentFactory(
        id=ENROLLMENT_SPANNING_ID, professor=prof_a, plan=plan, alias="  Grupo Verano ",
        start_date=datetime.date(2025, 6, 1), end_date=datetime.date(2025, 8, 31)
    )
    factories.EnrollmentFactory(
        id=ENROLLMENT_INACTIVE_ID, professor=prof_a, plan=plan, status=EnrollmentStatus.INACTIVE.value
    )
    factories.EnrollmentFactory(id=ENROLLMENT_NO_PLAN_ID, professor=prof_a, plan=None)

    factories.ProfessorBonusFactory(professor=prof_a, amount=Decimal("25.00"), description="Olympiad prep")
    factories.ProfessorBonusFactory(professor=prof_a, amount=Decimal("10.00"), status=BonusStatus.VOID.value)
    factories.ProfessorBonusFactory(professor=prof_a, amount=Decimal("99.00"), month="2025-06", bonus_date=datetime.date(2025, 6, 5))

    # --- Professor B ---
    enrollment_b = factories.EnrollmentFactory(
        id=ENROLLMENT_PROF_B_ID, professor=prof_b, plan=plan,
        available_balance=Decimal("200.00"), total_amount=Decimal("150.00")
    )
    factories.ClassRegistryFactory(enrollment_id=enrollment_b.id, class_date="2025-07-08", minutes_viewed=40)

    # --- Special Professor ---
    enrollment_special = factories.EnrollmentFactory(
        id=ENROLLMENT_SPECIAL_ID, professor=special, plan=plan,
        available_balance=Decimal("0.00"), total_amount=Decimal("0.00")
    )
    factories.ClassRegistryFactory(enrollment_id=enrollment_special.id, class_date="2025-07-21", minutes_viewed=60)

    # --- Idle Professor ---
    factories.EnrollmentFactory(
        id=ENROLLMENT_IDLE_ID, professor=idle, plan=plan,
        start_date=datetime.date(2025, 5, 1), end_date=datetime.date(2025, 5, 31)
    )

    await db_session.flush()
    db_session.expunge_all()
    print("\n--- Seeded July 2025 billing scenario ---")
    return {
        "professor_a_id": PROF_A_ID,
        "professor_b_id": PROF_B_ID,
        "special_professor_id": SPECIAL_PROF_ID,
        "idle_professor_id": PROF_IDLE_ID,
    }


@pytest.fixture(scope="function")
def special_professor_configured(monkeypatch):
    """Points SPECIAL_PROFESSOR_ID at the seeded special professor for one test."""
    monkeypatch.setattr(settings, "SPECIAL_PROFESSOR_ID", SPECIAL_PROF_ID)
    return SPECIAL_PROF_ID


# --- 3. HTTP Client Fixture ---

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    An HTTP client talking to the app in-process.
    `get_db_session` is overridden so requests share the test session,
    which is rolled back after every test.
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


# --- 4. SERVICE FIXTURES ---
# These just depend on the clean `db_session` fixture.

@pytest.fixture(scope="function")
def enrollment_service(db_session: AsyncSession) -> EnrollmentService:
    return EnrollmentService(db=db_session)

@pytest.fixture(scope="function")
def attendance_service(enrollment_service: EnrollmentService) -> AttendanceService:
    return AttendanceService(enrollment_service=enrollment_service)

@pytest.fixture(scope="function")
def report_service(
    enrollment_service: EnrollmentService,
    attendance_service: AttendanceService
) -> ReportService:
    return ReportService(enrollment_service=enrollment_service, attendance_service=attendance_service)

@pytest.fixture(scope="function")
def reconciliation_service(
    db_session: AsyncSession,
    enrollment_service: EnrollmentService
) -> BalanceReconciliationService:
    return BalanceReconciliationService(db=db_session, enrollment_service=enrollment_service)

@pytest.fixture(scope="function")
def payment_tracker_service(
    db_session: AsyncSession,
    reconciliation_service: BalanceReconciliationService
) -> PaymentTrackerService:
    return PaymentTrackerService(db=db_session, reconciliation_service=reconciliation_service)
