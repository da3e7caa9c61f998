"""Pydantic schemas shared by the API routers."""
from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from internhub.models.application import ApplicationStatus
from internhub.models.internship import InternshipStatus
from internhub.models.position import PositionStatus


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserSummary(ORMModel):
    id: int
    username: str
    real_name: str
    email: str


class StudentSummary(ORMModel):
    id: int
    user_id: int
    student_number: Optional[str] = None
    major: Optional[str] = None
    user: Optional[UserSummary] = None


class TeacherSummary(ORMModel):
    id: int
    user_id: int
    department: Optional[str] = None
    user: Optional[UserSummary] = None


class EnterpriseSummary(ORMModel):
    id: int
    user_id: int
    company_name: str
    industry: Optional[str] = None


class PositionOut(ORMModel):
    id: int
    enterprise_id: int
    title: str
    description: str
    requirements: Optional[str] = None
    total_slots: int
    available_slots: int
    start_date: date
    end_date: date
    status: PositionStatus
    created_at: Optional[datetime] = None
    enterprise: Optional[EnterpriseSummary] = None


class ApplicationOut(ORMModel):
    id: int
    student_id: int
    position_id: int
    teacher_id: Optional[int] = None
    status: ApplicationStatus
    personal_statement: str
    contact_info: str
    rejection_reason: Optional[str] = None
    applied_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    student: Optional[StudentSummary] = None
    position: Optional[PositionOut] = None


class ProgressOut(BaseModel):
    total_days: int
    completed_days: int
    percentage: int
    is_completed: bool


class InternshipOut(ORMModel):
    id: int
    application_id: int
    student_id: int
    position_id: int
    enterprise_id: int
    teacher_id: Optional[int] = None
    start_date: date
    end_date: date
    status: InternshipStatus
    teacher_score: Optional[float] = None
    enterprise_score: Optional[float] = None
    final_score: Optional[float] = None
    teacher_comment: Optional[str] = None
    enterprise_comment: Optional[str] = None
    student: Optional[StudentSummary] = None
    teacher: Optional[TeacherSummary] = None
    enterprise: Optional[EnterpriseSummary] = None
    position: Optional[PositionOut] = None


class InternshipDetail(InternshipOut):
    progress: Optional[ProgressOut] = None


class InternshipLogOut(ORMModel):
    id: int
    internship_id: int
    content: str
    log_date: date
    created_at: datetime


class InternshipFileOut(ORMModel):
    id: int
    internship_id: int
    file_name: str
    file_size: int
    file_type: Optional[str] = None
    uploaded_at: datetime


class EvaluationOut(BaseModel):
    teacher_score: Optional[float] = None
    teacher_comment: Optional[str] = None
    enterprise_score: Optional[float] = None
    enterprise_comment: Optional[str] = None
    final_score: Optional[float] = None
    status: InternshipStatus


class NotificationOut(ORMModel):
    id: int
    user_id: int
    title: str
    content: str
    type: Optional[str] = None
    is_read: bool
    created_at: datetime


class Pagination(BaseModel):
    total: int
    page: Optional[int] = None
    limit: int
    offset: Optional[int] = None
    total_pages: Optional[int] = None


class MessageResponse(BaseModel):
    """Response for operations without a resource body"""
    message: str
    data: Optional[Dict[str, Any]] = None
