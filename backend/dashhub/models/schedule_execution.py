"""定时报表执行记录模型"""
from sqlalchemy import Column, BigInteger, Integer, String, Text, TIMESTAMP, JSON, ForeignKey
from sqlalchemy.orm import relationship

from dashhub.db.base_class import Base, BigIntId


class ScheduleExecution(Base):
    """定时报表执行记录表"""
    __tablename__ = "schedule_executions"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    schedule_id = Column(BigInteger, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)  # SUCCESS, FAILED
    started_at = Column(TIMESTAMP, nullable=False, index=True)
    duration_ms = Column(Integer, nullable=False, default=0)
    delivered_count = Column(Integer, nullable=False, default=0)
    failed_recipients = Column(JSON, nullable=True)  # [{"recipient": ..., "error": ...}]
    error_message = Column(Text, nullable=True)

    # 关系
    schedule = relationship("Schedule", back_populates="executions")
