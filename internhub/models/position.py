"""Position model - Internship openings with slot accounting"""
import enum

from sqlalchemy import Column, String, Integer, Text, Date, DateTime, ForeignKey, Enum, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from internhub.database import Base


class PositionStatus(str, enum.Enum):
    OPEN = "open"
    FULL = "full"
    CLOSED = "closed"


class Position(Base):
    """Enterprise-posted opening with a slot capacity and date range"""

    __tablename__ = "positions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    enterprise_id = Column(Integer, ForeignKey("enterprises.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(Text, nullable=True)
    total_slots = Column(Integer, nullable=False)
    available_slots = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(
        Enum(PositionStatus, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PositionStatus.OPEN,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    enterprise = relationship("Enterprise", lazy="joined")

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("total_slots >= 1", name="ck_positions_total_slots"),
        CheckConstraint(
            "available_slots >= 0 AND available_slots <= total_slots",
            name="ck_positions_available_slots",
        ),
        CheckConstraint("end_date > start_date", name="ck_positions_date_range"),
        Index("idx_positions_enterprise", "enterprise_id"),
        Index("idx_positions_status", "status"),
    )

    def __repr__(self):
        return f"<Position(id={self.id}, title={self.title}, slots={self.available_slots}/{self.total_slots})>"
