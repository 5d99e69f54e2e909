"""定时报表模型"""
from sqlalchemy import Column, BigInteger, String, Boolean, TIMESTAMP, JSON, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from dashhub.core.enums import ExportFormat
from dashhub.db.base_class import Base, BigIntId


class Schedule(Base):
    """定时报表表

    仅创建者可管理，不存在分享概念
    """
    __tablename__ = "schedules"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    dashboard_id = Column(BigInteger, ForeignKey("dashboards.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    cron_expr = Column(String(100), nullable=False)
    recipients = Column(JSON, nullable=False, default=list)
    formats = Column(JSON, nullable=False, default=lambda: [ExportFormat.PDF.value])
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_run = Column(TIMESTAMP, nullable=True)
    next_run = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    # 关系
    owner = relationship("User", back_populates="schedules")
    dashboard = relationship("Dashboard", back_populates="schedules")
    executions = relationship("ScheduleExecution", back_populates="schedule", cascade="all, delete-orphan")
