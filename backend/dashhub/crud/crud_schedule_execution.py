"""Schedule Execution CRUD操作"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy.orm import Session

from dashhub.core.enums import ExecutionStatus
from dashhub.crud.base import CRUDBase
from dashhub.models.schedule import Schedule
from dashhub.models.schedule_execution import ScheduleExecution


class CRUDScheduleExecution(CRUDBase[ScheduleExecution, BaseModel, BaseModel]):
    """执行记录 CRUD操作类"""

    def create_record(
        self,
        db: Session,
        *,
        schedule_id: int,
        status: ExecutionStatus,
        started_at: datetime,
        duration_ms: int,
        delivered_count: int = 0,
        failed_recipients: Optional[List[Dict[str, Any]]] = None,
        error_message: Optional[str] = None
    ) -> Optional[ScheduleExecution]:
        """写入一条执行记录；计划已被删除时跳过并返回 None"""
        if db.get(Schedule, schedule_id) is None:
            return None

        record = ScheduleExecution(
            schedule_id=schedule_id,
            status=ExecutionStatus(status).value,
            started_at=started_at,
            duration_ms=duration_ms,
            delivered_count=delivered_count,
            failed_recipients=failed_recipients or None,
            error_message=error_message
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    def get_by_schedule(
        self, db: Session, *, schedule_id: int, limit: int = 50
    ) -> List[ScheduleExecution]:
        """获取计划的执行历史（最新在前）"""
        return db.query(ScheduleExecution).filter(
            ScheduleExecution.schedule_id == schedule_id
        ).order_by(
            ScheduleExecution.started_at.desc(),
            ScheduleExecution.id.desc()
        ).limit(limit).all()


# 创建全局实例
crud_schedule_execution = CRUDScheduleExecution(ScheduleExecution)
