"""Dashboard分享模型"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from dashhub.db.base_class import Base, BigIntId


class DashboardShare(Base):
    """Dashboard分享表

    每个 (dashboard_id, user_id) 至多一行；Dashboard 的 owner 永远不会出现在此表中
    """
    __tablename__ = "dashboard_shares"
    __table_args__ = (
        UniqueConstraint("dashboard_id", "user_id", name="uq_dashboard_share_dashboard_user"),
    )

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    dashboard_id = Column(BigInteger, ForeignKey("dashboards.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(20), nullable=False)  # VIEW, EDIT, ADMIN
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    # 关系
    dashboard = relationship("Dashboard", back_populates="shares")
    user = relationship("User", back_populates="dashboard_shares")
