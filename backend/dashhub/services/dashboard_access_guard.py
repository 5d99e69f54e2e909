"""
Dashboard访问控制

有效权限按以下优先级解析：
1. Dashboard 不存在（或已软删除） -> DashboardNotFoundError
2. owner -> ADMIN（不查询分享记录，避免被过期的分享降级）
3. 存在分享记录 -> 分享的权限
4. 公开 Dashboard -> VIEW（最弱，不会覆盖显式分享）
5. 无权限 -> None
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core.enums import PermissionLevel
from dashhub.core.exceptions import (
    AccessDeniedError,
    DashboardNotFoundError,
    InsufficientPermissionsError,
    OnlyOwnerCanDeleteError,
)
from dashhub.models.dashboard import Dashboard

logger = logging.getLogger(__name__)


class DashboardAccessGuard:
    """组合所有权、分享记录与公开标记，回答 "用户能否对 Dashboard 执行某操作" """

    def get_dashboard(self, db: Session, dashboard_id: int) -> Dashboard:
        dashboard = crud.crud_dashboard.get_active(db, dashboard_id=dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError()
        return dashboard

    def resolve_permission(self, db: Session, dashboard: Dashboard, user_id: int) -> Optional[PermissionLevel]:
        """对已加载的 Dashboard 解析有效权限"""
        if dashboard.owner_id == user_id:
            return PermissionLevel.ADMIN

        shared = crud.crud_dashboard_share.get_user_permission(
            db, dashboard_id=dashboard.id, user_id=user_id
        )
        if shared is not None:
            return shared

        if dashboard.is_public:
            return PermissionLevel.VIEW

        return None

    def get_user_permission(self, db: Session, dashboard_id: int, user_id: int) -> Optional[PermissionLevel]:
        """获取用户对Dashboard的有效权限

        Raises:
            DashboardNotFoundError: Dashboard 不存在
        """
        dashboard = self.get_dashboard(db, dashboard_id)
        return self.resolve_permission(db, dashboard, user_id)

    def has_access(self, db: Session, dashboard_id: int, user_id: int) -> bool:
        return self.get_user_permission(db, dashboard_id, user_id) is not None

    def verify_read_permission(self, db: Session, dashboard_id: int, user_id: int) -> PermissionLevel:
        """校验读取权限并返回有效权限"""
        permission = self.get_user_permission(db, dashboard_id, user_id)
        if permission is None:
            raise AccessDeniedError()
        return permission

    def verify_modify_permission(self, db: Session, dashboard_id: int, user_id: int) -> None:
        """校验修改权限：需要 EDIT 或 ADMIN

        Raises:
            DashboardNotFoundError / AccessDeniedError / InsufficientPermissionsError
        """
        permission = self.get_user_permission(db, dashboard_id, user_id)

        if permission is None:
            raise AccessDeniedError()

        if permission == PermissionLevel.VIEW:
            raise InsufficientPermissionsError("Insufficient permissions to modify dashboard")

    def verify_delete_permission(self, db: Session, dashboard_id: int, user_id: int) -> None:
        """校验删除权限：owner，或持有 ADMIN 分享的非 owner

        Raises:
            DashboardNotFoundError / OnlyOwnerCanDeleteError
        """
        dashboard = self.get_dashboard(db, dashboard_id)

        if dashboard.owner_id == user_id:
            return

        permission = self.resolve_permission(db, dashboard, user_id)
        if permission != PermissionLevel.ADMIN:
            logger.info(f"用户 {user_id} 尝试删除 Dashboard {dashboard_id}，权限 {permission}，已拒绝")
            raise OnlyOwnerCanDeleteError()
