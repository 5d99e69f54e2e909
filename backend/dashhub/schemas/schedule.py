"""定时报表 Schema定义"""
from typing import Optional, List, Any, Dict
from datetime import datetime
from pydantic import BaseModel, Field

from dashhub.core.enums import ExportFormat, ExecutionStatus


class ScheduleCreate(BaseModel):
    """创建定时报表请求Schema

    CRON、邮箱与格式的合法性由服务层校验，保证校验失败时不落库
    """
    name: str = Field(..., description="计划名称")
    cron_expr: str = Field(..., description="CRON 表达式（5 或 6 段）")
    dashboard_id: int
    recipients: List[str] = Field(..., description="收件人邮箱列表")
    formats: List[str] = Field(default_factory=lambda: [ExportFormat.PDF.value], description="导出格式")


class ScheduleUpdate(BaseModel):
    """更新定时报表请求Schema"""
    name: Optional[str] = None
    cron_expr: Optional[str] = None
    recipients: Optional[List[str]] = None
    formats: Optional[List[str]] = None
    is_active: Optional[bool] = None


class ScheduleResponse(BaseModel):
    id: int
    owner_id: int
    dashboard_id: int
    name: str
    cron_expr: str
    description: Optional[str] = Field(None, description="可读的调度描述")
    recipients: List[str]
    formats: List[ExportFormat]
    is_active: bool
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ScheduleExecutionResponse(BaseModel):
    id: int
    schedule_id: int
    status: ExecutionStatus
    started_at: datetime
    duration_ms: int
    delivered_count: int
    failed_recipients: Optional[List[Dict[str, Any]]] = None
    error_message: Optional[str] = None

    class Config:
        from_attributes = True


class RunNowResponse(BaseModel):
    schedule_id: int
    triggered: bool
