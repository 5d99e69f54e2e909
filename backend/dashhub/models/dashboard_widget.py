"""Dashboard Widget模型"""
from sqlalchemy import Column, BigInteger, String, TIMESTAMP, JSON, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from dashhub.db.base_class import Base, BigIntId


class DashboardWidget(Base):
    """Dashboard组件表（报表渲染只读取标题、类型与缓存数据）"""
    __tablename__ = "dashboard_widgets"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    dashboard_id = Column(BigInteger, ForeignKey("dashboards.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    widget_type = Column(String(50), nullable=False)  # chart, table, metric
    data_source = Column(String(255), nullable=True)
    data_cache = Column(JSON, nullable=True)  # {"columns": [...], "data": [{...}]}
    last_refresh_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())

    # 关系
    dashboard = relationship("Dashboard", back_populates="widgets")
