"""Role profile lookups shared by the lifecycle services"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internhub.errors import NotFoundError
from internhub.models.user import Student, Teacher, Enterprise


async def find_student(session: AsyncSession, user_id: int) -> Optional[Student]:
    result = await session.execute(select(Student).where(Student.user_id == user_id))
    return result.scalar_one_or_none()


async def find_teacher(session: AsyncSession, user_id: int) -> Optional[Teacher]:
    result = await session.execute(select(Teacher).where(Teacher.user_id == user_id))
    return result.scalar_one_or_none()


async def find_enterprise(session: AsyncSession, user_id: int) -> Optional[Enterprise]:
    result = await session.execute(select(Enterprise).where(Enterprise.user_id == user_id))
    return result.scalar_one_or_none()


async def require_student(session: AsyncSession, user_id: int) -> Student:
    student = await find_student(session, user_id)
    if student is None:
        raise NotFoundError("Student profile", user_id)
    return student


async def require_teacher(session: AsyncSession, user_id: int) -> Teacher:
    teacher = await find_teacher(session, user_id)
    if teacher is None:
        raise NotFoundError("Teacher profile", user_id)
    return teacher


async def require_enterprise(session: AsyncSession, user_id: int) -> Enterprise:
    enterprise = await find_enterprise(session, user_id)
    if enterprise is None:
        raise NotFoundError("Enterprise profile", user_id)
    return enterprise


async def all_teacher_user_ids(session: AsyncSession) -> List[int]:
    result = await session.execute(select(Teacher.user_id).order_by(Teacher.id))
    return list(result.scalars().all())
