"""Dashboard Share CRUD操作

只负责分享记录的存取；所有权与公开标记由上层（DashboardAccessGuard）组合判断
"""
from typing import List, Optional
import logging

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from dashhub.core.enums import PermissionLevel
from dashhub.core.exceptions import ShareNotFoundError
from dashhub.crud.base import CRUDBase
from dashhub.models.dashboard import Dashboard
from dashhub.models.dashboard_share import DashboardShare

logger = logging.getLogger(__name__)


class CRUDDashboardShare(CRUDBase[DashboardShare, BaseModel, BaseModel]):
    """Dashboard Share CRUD操作类"""

    def get_by_dashboard_and_user(
        self,
        db: Session,
        *,
        dashboard_id: int,
        user_id: int
    ) -> Optional[DashboardShare]:
        """获取 (dashboard, user) 对应的分享记录"""
        return db.query(DashboardShare).filter(
            DashboardShare.dashboard_id == dashboard_id,
            DashboardShare.user_id == user_id
        ).first()

    def upsert(
        self,
        db: Session,
        *,
        dashboard_id: int,
        user_id: int,
        permission: PermissionLevel
    ) -> DashboardShare:
        """创建或更新分享记录

        已存在时覆盖权限级别而不是报错；并发插入同一对时唯一约束冲突，回滚后按更新处理

        Args:
            dashboard_id: Dashboard ID
            user_id: 被分享用户ID
            permission: 权限级别（此层接受 ADMIN，供管理端直接写入）

        Returns:
            分享记录
        """
        level = PermissionLevel(permission).value
        existing = self.get_by_dashboard_and_user(db, dashboard_id=dashboard_id, user_id=user_id)

        if existing is None:
            share = DashboardShare(dashboard_id=dashboard_id, user_id=user_id, permission=level)
            db.add(share)
            try:
                db.commit()
                db.refresh(share)
                return share
            except IntegrityError:
                db.rollback()
                logger.info(f"分享记录并发创建 dashboard={dashboard_id} user={user_id}，改为更新")
                existing = self.get_by_dashboard_and_user(db, dashboard_id=dashboard_id, user_id=user_id)
                if existing is None:
                    raise

        existing.permission = level
        db.commit()
        db.refresh(existing)
        return existing

    def delete(self, db: Session, *, dashboard_id: int, user_id: int) -> None:
        """删除分享记录

        Raises:
            ShareNotFoundError: 记录不存在
        """
        share = self.get_by_dashboard_and_user(db, dashboard_id=dashboard_id, user_id=user_id)
        if share is None:
            raise ShareNotFoundError()

        db.delete(share)
        db.commit()

    def get_shared_users(self, db: Session, *, dashboard_id: int) -> List[DashboardShare]:
        """获取Dashboard的所有分享记录（含用户信息，按创建时间倒序）"""
        return db.query(DashboardShare).options(
            joinedload(DashboardShare.user)
        ).filter(
            DashboardShare.dashboard_id == dashboard_id
        ).order_by(
            DashboardShare.created_at.desc(),
            DashboardShare.id.desc()
        ).all()

    def get_shared_to_user(self, db: Session, *, user_id: int) -> List[DashboardShare]:
        """获取分享给某用户的所有记录（含Dashboard与owner信息，跳过已删除的Dashboard）"""
        return db.query(DashboardShare).join(
            Dashboard, DashboardShare.dashboard_id == Dashboard.id
        ).options(
            joinedload(DashboardShare.dashboard).joinedload(Dashboard.owner),
            joinedload(DashboardShare.dashboard).joinedload(Dashboard.widgets)
        ).filter(
            DashboardShare.user_id == user_id,
            Dashboard.deleted_at.is_(None)
        ).order_by(
            DashboardShare.created_at.desc(),
            DashboardShare.id.desc()
        ).all()

    def has_access(self, db: Session, *, dashboard_id: int, user_id: int) -> bool:
        """仅判断分享记录是否存在"""
        return self.get_by_dashboard_and_user(db, dashboard_id=dashboard_id, user_id=user_id) is not None

    def get_user_permission(
        self,
        db: Session,
        *,
        dashboard_id: int,
        user_id: int
    ) -> Optional[PermissionLevel]:
        """获取分享记录中的权限级别，不存在时返回 None"""
        share = self.get_by_dashboard_and_user(db, dashboard_id=dashboard_id, user_id=user_id)
        if share is None:
            return None
        return PermissionLevel(share.permission)


# 创建全局实例
crud_dashboard_share = CRUDDashboardShare(DashboardShare)
