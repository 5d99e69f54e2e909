"""Dashboard分享 Schema定义"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field

from dashhub.core.enums import PermissionLevel
from dashhub.schemas.auth import UserBrief


class ShareCreate(BaseModel):
    """分享请求Schema: user_id 与 email 二选一"""
    user_id: Optional[int] = Field(None, description="目标用户ID")
    email: Optional[str] = Field(None, description="目标用户邮箱")
    # 保持字符串类型，由服务层给出 InvalidPermission 错误
    permission: str = Field(PermissionLevel.VIEW.value, description="权限级别: VIEW/EDIT")


class ShareUpdate(BaseModel):
    permission: str


class ShareResponse(BaseModel):
    """分享记录响应Schema"""
    id: int
    dashboard_id: int
    user_id: int
    permission: PermissionLevel
    created_at: datetime
    user: Optional[UserBrief] = None

    class Config:
        from_attributes = True


class SharedDashboardItem(BaseModel):
    """分享给我的Dashboard"""
    id: int
    title: str
    description: Optional[str] = None
    is_public: bool
    owner: UserBrief
    widget_count: int = 0
    shared_permission: PermissionLevel
    shared_at: datetime


class SharedDashboardListResponse(BaseModel):
    items: List[SharedDashboardItem]
