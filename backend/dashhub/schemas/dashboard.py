"""Dashboard Schema定义"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from dashhub.core.enums import PermissionLevel


class DashboardUpdate(BaseModel):
    """更新Dashboard的请求Schema"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_public: Optional[bool] = None


class DashboardDetail(BaseModel):
    """Dashboard详情Schema"""
    id: int
    owner_id: int
    title: str
    description: Optional[str] = None
    is_public: bool = False
    permission_level: Optional[PermissionLevel] = Field(None, description="当前用户的有效权限")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EffectivePermissionResponse(BaseModel):
    """当前用户对Dashboard的有效权限"""
    dashboard_id: int
    permission: Optional[PermissionLevel] = None
    has_access: bool
