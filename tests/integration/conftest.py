"""
Fixtures for service and API integration tests

Each test runs against freshly created tables and a small campus:
two teachers, two enterprises and six students.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List

import pytest
from sqlalchemy import select, func

from internhub.database import AsyncSessionLocal, create_all, drop_all, engine
from internhub.models.notification import Notification, OperationLog
from internhub.models.user import Enterprise, Role, Student, Teacher, User
from internhub.services.application_service import get_application_service
from internhub.services.position_service import get_position_service


@dataclass
class Campus:
    """User ids of the seeded accounts"""
    teacher: int
    other_teacher: int
    enterprise: int
    other_enterprise: int
    students: List[int] = field(default_factory=list)


@pytest.fixture(autouse=True)
async def database():
    """Create all tables before each test and drop them afterwards"""
    await drop_all()
    await create_all()
    yield
    await drop_all()
    await engine.dispose()


async def _add_user(session, username: str, role: Role) -> User:
    user = User(username=username, real_name=username.replace("_", " ").title(), email=f"{username}@campus.edu", role=role)
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def campus() -> Campus:
    """Seed role accounts and profiles"""
    async with AsyncSessionLocal() as session:
        teachers = []
        for i in range(2):
            user = await _add_user(session, f"teacher_{i + 1}", Role.TEACHER)
            session.add(Teacher(user_id=user.id, teacher_number=f"T{i + 1:04d}", department="Computer Science"))
            teachers.append(user.id)

        enterprises = []
        for i, company in enumerate(["Northwind Labs", "Bluefin Analytics"]):
            user = await _add_user(session, f"enterprise_{i + 1}", Role.ENTERPRISE)
            session.add(Enterprise(user_id=user.id, company_name=company, industry="Software"))
            enterprises.append(user.id)

        students = []
        for i in range(6):
            user = await _add_user(session, f"student_{i + 1}", Role.STUDENT)
            session.add(Student(user_id=user.id, student_number=f"2024{i + 1:04d}", major="Computer Science"))
            students.append(user.id)

        await session.commit()

    return Campus(
        teacher=teachers[0],
        other_teacher=teachers[1],
        enterprise=enterprises[0],
        other_enterprise=enterprises[1],
        students=students,
    )


@pytest.fixture
def make_position(campus):
    """Factory creating a position owned by the first enterprise unless told otherwise"""

    async def _make(total_slots=3, start_date=None, end_date=None, enterprise=None, title="Backend Intern",
                    description="Build internal REST services"):
        today = date.today()
        if start_date is None:
            start_date = end_date - timedelta(days=60) if end_date else today + timedelta(days=7)
        if end_date is None:
            end_date = start_date + timedelta(days=90)
        return await get_position_service().create_position(
            enterprise or campus.enterprise,
            title,
            description,
            total_slots=total_slots,
            start_date=start_date,
            end_date=end_date,
        )

    return _make


@pytest.fixture
def make_internship(campus, make_position):
    """Factory running submit + approve for one student on a fresh single-slot position"""

    async def _make(student_index=0, start_date=None, end_date=None):
        position = await make_position(total_slots=1, start_date=start_date, end_date=end_date)
        applications = get_application_service()
        application = await applications.submit(
            campus.students[student_index], position.id, "I would like to join the team.", "555-0100"
        )
        _, internship = await applications.approve(application.id, campus.teacher)
        return internship

    return _make


@pytest.fixture
def count_notifications():
    """Count notification rows, optionally for one user and type"""

    async def _count(user_id=None, type=None):
        query = select(func.count()).select_from(Notification)
        if user_id is not None:
            query = query.where(Notification.user_id == user_id)
        if type is not None:
            query = query.where(Notification.type == type)
        async with AsyncSessionLocal() as session:
            return await session.scalar(query)

    return _count


@pytest.fixture
def operation_types():
    """Audit operation types recorded so far, oldest first"""

    async def _types():
        async with AsyncSessionLocal() as session:
            result = await session.execute(select(OperationLog.operation_type).order_by(OperationLog.id))
            return list(result.scalars().all())

    return _types
