"""Application model - A student's request for a position"""
import enum

from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship

from internhub.database import Base


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Application(Base):
    """Student application reviewed exactly once by a teacher"""

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    position_id = Column(Integer, ForeignKey("positions.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    status = Column(
        Enum(ApplicationStatus, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    personal_statement = Column(Text, nullable=False)
    contact_info = Column(String(255), nullable=False)
    rejection_reason = Column(Text, nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)

    student = relationship("Student", lazy="joined")
    position = relationship("Position", lazy="joined")

    # Indexes for performance
    __table_args__ = (
        Index("idx_applications_student_status", "student_id", "status"),
        Index("idx_applications_position_status", "position_id", "status"),
        # at most one pending or approved application per student
        Index(
            "uq_applications_student_active",
            "student_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'approved')"),
            sqlite_where=text("status IN ('pending', 'approved')"),
        ),
    )

    def __repr__(self):
        return f"<Application(id={self.id}, student={self.student_id}, status={self.status})>"
