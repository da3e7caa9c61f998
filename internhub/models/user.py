"""User model and role profiles (student, teacher, enterprise)"""
import enum

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from internhub.database import Base


class Role(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ENTERPRISE = "enterprise"


class User(Base):
    """Account resolved by the identity provider; carries exactly one role"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False)
    real_name = Column(String(50), nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(
        Enum(Role, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class Student(Base):
    """Student profile"""

    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    student_number = Column(String(20), unique=True, nullable=False)
    major = Column(String(100), nullable=True)
    grade = Column(Integer, nullable=True)
    class_name = Column(String(50), nullable=True)

    user = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<Student(id={self.id}, user_id={self.user_id}, number={self.student_number})>"


class Teacher(Base):
    """Teacher profile; teachers review applications and supervise internships"""

    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    teacher_number = Column(String(20), unique=True, nullable=False)
    department = Column(String(100), nullable=True)
    title = Column(String(50), nullable=True)

    user = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<Teacher(id={self.id}, user_id={self.user_id}, number={self.teacher_number})>"


class Enterprise(Base):
    """Enterprise profile; enterprises own positions"""

    __tablename__ = "enterprises"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    company_name = Column(String(200), nullable=False)
    industry = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)

    user = relationship("User", lazy="joined")

    __table_args__ = (
        Index("idx_enterprises_company", "company_name"),
    )

    def __repr__(self):
        return f"<Enterprise(id={self.id}, company={self.company_name})>"
