"""Schedule CRUD操作"""
from typing import List
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy.orm import Session

from dashhub.crud.base import CRUDBase
from dashhub.models.schedule import Schedule
from dashhub.schemas.schedule import ScheduleUpdate


class CRUDSchedule(CRUDBase[Schedule, BaseModel, ScheduleUpdate]):
    """Schedule CRUD操作类"""

    def get_by_owner(self, db: Session, *, owner_id: int) -> List[Schedule]:
        """获取用户的所有定时报表（按创建时间倒序）"""
        return db.query(Schedule).filter(
            Schedule.owner_id == owner_id
        ).order_by(Schedule.created_at.desc(), Schedule.id.desc()).all()

    def get_active(self, db: Session) -> List[Schedule]:
        """获取所有启用的定时报表（进程启动时加载）"""
        return db.query(Schedule).filter(Schedule.is_active.is_(True)).order_by(Schedule.id).all()

    def mark_last_run(self, db: Session, *, schedule_id: int, run_at: datetime) -> bool:
        """更新 last_run；计划已被删除时返回 False"""
        updated = db.query(Schedule).filter(Schedule.id == schedule_id).update(
            {Schedule.last_run: run_at}, synchronize_session=False
        )
        db.commit()
        return updated > 0


# 创建全局实例
crud_schedule = CRUDSchedule(Schedule)
