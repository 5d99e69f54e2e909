"""用户模型"""
from sqlalchemy import Column, String, Boolean, TIMESTAMP
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from dashhub.core.enums import Role
from dashhub.db.base_class import Base, BigIntId


class User(Base):
    """用户表"""
    __tablename__ = "users"

    id = Column(BigIntId, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.VIEWER.value)  # ADMIN, ANALYST, VIEWER
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())

    # 关系
    owned_dashboards = relationship("Dashboard", back_populates="owner", foreign_keys="Dashboard.owner_id")
    dashboard_shares = relationship("DashboardShare", back_populates="user", cascade="all, delete-orphan")
    schedules = relationship("Schedule", back_populates="owner", cascade="all, delete-orphan")
