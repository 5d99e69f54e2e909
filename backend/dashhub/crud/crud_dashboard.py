"""Dashboard CRUD操作"""
from typing import Optional
from datetime import datetime
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session, joinedload

from dashhub.crud.base import CRUDBase
from dashhub.models.dashboard import Dashboard
from dashhub.schemas.dashboard import DashboardUpdate

logger = logging.getLogger(__name__)


class CRUDDashboard(CRUDBase[Dashboard, BaseModel, DashboardUpdate]):
    """Dashboard CRUD操作类

    软删除的 Dashboard 对所有查询都视为不存在
    """

    def get_active(self, db: Session, *, dashboard_id: int) -> Optional[Dashboard]:
        """获取未删除的Dashboard"""
        return db.query(Dashboard).filter(
            Dashboard.id == dashboard_id,
            Dashboard.deleted_at.is_(None)
        ).first()

    def get_with_widgets(self, db: Session, *, dashboard_id: int) -> Optional[Dashboard]:
        """获取Dashboard及其Widget（报表渲染使用）"""
        return db.query(Dashboard).options(
            joinedload(Dashboard.widgets),
            joinedload(Dashboard.owner)
        ).filter(
            Dashboard.id == dashboard_id,
            Dashboard.deleted_at.is_(None)
        ).first()

    def create_dashboard(
        self,
        db: Session,
        *,
        owner_id: int,
        title: str,
        description: Optional[str] = None,
        is_public: bool = False
    ) -> Dashboard:
        """创建Dashboard

        所有权本身即代表 ADMIN 权限，不写入分享记录
        """
        try:
            dashboard = Dashboard(
                owner_id=owner_id,
                title=title,
                description=description,
                is_public=is_public
            )
            db.add(dashboard)
            db.commit()
            db.refresh(dashboard)
            return dashboard
        except Exception:
            db.rollback()
            raise

    def soft_delete(self, db: Session, *, dashboard_id: int) -> bool:
        """软删除Dashboard

        Returns:
            是否成功
        """
        dashboard = self.get_active(db, dashboard_id=dashboard_id)
        if not dashboard:
            return False

        dashboard.deleted_at = datetime.utcnow()
        db.commit()
        logger.info(f"Dashboard {dashboard_id} 已软删除")
        return True


# 创建全局实例
crud_dashboard = CRUDDashboard(Dashboard)
