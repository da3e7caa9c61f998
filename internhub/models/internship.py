"""Internship model - Supervised placement created on application approval"""
import enum

from sqlalchemy import Column, Integer, Float, Text, Date, DateTime, ForeignKey, Enum, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from internhub.database import Base


class InternshipStatus(str, enum.Enum):
    ONGOING = "ongoing"
    PENDING_EVALUATION = "pending_evaluation"
    COMPLETED = "completed"


class Internship(Base):
    """Internship with dual (teacher + enterprise) evaluation"""

    __tablename__ = "internships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    position_id = Column(Integer, ForeignKey("positions.id", ondelete="CASCADE"), nullable=False)
    enterprise_id = Column(Integer, ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(InternshipStatus, native_enum=False, length=30, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InternshipStatus.ONGOING,
    )
    teacher_score = Column(
        Float,
        CheckConstraint("teacher_score >= 0 AND teacher_score <= 100"),
        nullable=True,
    )
    enterprise_score = Column(
        Float,
        CheckConstraint("enterprise_score >= 0 AND enterprise_score <= 100"),
        nullable=True,
    )
    final_score = Column(
        Float,
        CheckConstraint("final_score >= 0 AND final_score <= 100"),
        nullable=True,
    )
    teacher_comment = Column(Text, nullable=True)
    enterprise_comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    student = relationship("Student", lazy="joined")
    teacher = relationship("Teacher", lazy="joined")
    enterprise = relationship("Enterprise", lazy="joined")
    position = relationship("Position", lazy="joined")

    __mapper_args__ = {"eager_defaults": True}

    # Indexes for performance
    __table_args__ = (
        Index("idx_internships_status_end", "status", "end_date"),
        Index("idx_internships_student", "student_id"),
        Index("idx_internships_teacher", "teacher_id"),
        Index("idx_internships_enterprise", "enterprise_id"),
    )

    def __repr__(self):
        return f"<Internship(id={self.id}, student={self.student_id}, status={self.status})>"


class InternshipLog(Base):
    """Append-only progress log written by the intern"""

    __tablename__ = "internship_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    internship_id = Column(Integer, ForeignKey("internships.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    log_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_internship_logs_internship", "internship_id", "log_date"),
    )

    def __repr__(self):
        return f"<InternshipLog(id={self.id}, internship={self.internship_id}, date={self.log_date})>"


class InternshipFile(Base):
    """Append-only attachment uploaded by the intern"""

    __tablename__ = "internship_files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    internship_id = Column(Integer, ForeignKey("internships.id", ondelete="CASCADE"), nullable=False)
    file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_internship_files_internship", "internship_id"),
    )

    def __repr__(self):
        return f"<InternshipFile(id={self.id}, internship={self.internship_id}, name={self.file_name})>"
