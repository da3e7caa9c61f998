"""Notification and OperationLog models - Side artifacts of lifecycle transitions"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.sql import func

from internhub.database import Base


class Notification(Base):
    """In-app message delivered to a single user"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(50), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "is_read"),
        Index("idx_notifications_created", "created_at"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, type={self.type})>"


class OperationLog(Base):
    """Audit trail entry for a user operation"""

    __tablename__ = "operation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    operation_type = Column(String(50), nullable=False)
    operation_desc = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("idx_operation_logs_user", "user_id"),
        Index("idx_operation_logs_type", "operation_type"),
    )

    def __repr__(self):
        return f"<OperationLog(id={self.id}, user={self.user_id}, type={self.operation_type})>"
