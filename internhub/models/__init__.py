"""SQLAlchemy ORM Models for InternHub Database Schema"""
from internhub.models.user import Role, User, Student, Teacher, Enterprise
from internhub.models.position import Position, PositionStatus
from internhub.models.application import Application, ApplicationStatus
from internhub.models.internship import Internship, InternshipStatus, InternshipLog, InternshipFile
from internhub.models.notification import Notification, OperationLog

__all__ = [
    "Role",
    "User",
    "Student",
    "Teacher",
    "Enterprise",
    "Position",
    "PositionStatus",
    "Application",
    "ApplicationStatus",
    "Internship",
    "InternshipStatus",
    "InternshipLog",
    "InternshipFile",
    "Notification",
    "OperationLog",
]
