"""
Dashboard分享服务

在 crud_dashboard_share（原始存储）之上叠加业务规则：
- 只有 owner 可以分享 / 撤销 / 修改分享
- 不能分享给自己
- 通过分享接口只能授予 VIEW 或 EDIT
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core.enums import PermissionLevel, SHAREABLE_PERMISSIONS
from dashhub.core.exceptions import (
    AccessDeniedError,
    DashboardNotFoundError,
    InvalidPermissionError,
    NotOwnerError,
    SelfShareError,
    ShareNotFoundError,
    UserNotFoundError,
)
from dashhub.models.dashboard import Dashboard
from dashhub.models.dashboard_share import DashboardShare
from dashhub.schemas.auth import UserBrief
from dashhub.schemas.share import SharedDashboardItem

logger = logging.getLogger(__name__)


def parse_share_permission(permission: object) -> PermissionLevel:
    """校验分享权限值，只接受 VIEW / EDIT"""
    try:
        level = PermissionLevel(permission)
    except (ValueError, TypeError):
        raise InvalidPermissionError(details={"permission": str(permission)})
    if level not in SHAREABLE_PERMISSIONS:
        raise InvalidPermissionError(details={"permission": level.value})
    return level


class ShareService:
    """Dashboard分享服务"""

    def _get_owned_dashboard(
        self, db: Session, dashboard_id: int, owner_id: int, action: str
    ) -> Dashboard:
        dashboard = crud.crud_dashboard.get_active(db, dashboard_id=dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError()
        if dashboard.owner_id != owner_id:
            raise NotOwnerError(f"Only dashboard owner can {action}")
        return dashboard

    def share(
        self,
        db: Session,
        *,
        dashboard_id: int,
        target_user_id: int,
        permission: object,
        owner_id: int
    ) -> DashboardShare:
        """
        分享Dashboard给用户（重复分享时更新权限）

        Raises:
            InvalidPermissionError: 权限值不是 VIEW/EDIT
            DashboardNotFoundError: Dashboard 不存在
            NotOwnerError: 操作者不是 owner
            SelfShareError: 分享给自己
            UserNotFoundError: 目标用户不存在
        """
        level = parse_share_permission(permission)
        self._get_owned_dashboard(db, dashboard_id, owner_id, "share")

        if target_user_id == owner_id:
            raise SelfShareError()

        if crud.user.get(db, target_user_id) is None:
            raise UserNotFoundError()

        share = crud.crud_dashboard_share.upsert(
            db,
            dashboard_id=dashboard_id,
            user_id=target_user_id,
            permission=level
        )
        logger.info(f"Dashboard {dashboard_id} 已分享给用户 {target_user_id}，权限 {level.value}")
        return share

    def share_by_email(
        self,
        db: Session,
        *,
        dashboard_id: int,
        email: str,
        permission: object,
        owner_id: int
    ) -> DashboardShare:
        """按邮箱分享：先将邮箱解析为用户"""
        target = crud.user.get_by_email(db, email=email)
        if target is None:
            raise UserNotFoundError("User with this email not found")

        return self.share(
            db,
            dashboard_id=dashboard_id,
            target_user_id=target.id,
            permission=permission,
            owner_id=owner_id
        )

    def revoke(self, db: Session, *, dashboard_id: int, target_user_id: int, owner_id: int) -> None:
        """撤销用户的访问权限

        Raises:
            DashboardNotFoundError / NotOwnerError / ShareNotFoundError
        """
        self._get_owned_dashboard(db, dashboard_id, owner_id, "revoke access")
        crud.crud_dashboard_share.delete(db, dashboard_id=dashboard_id, user_id=target_user_id)
        logger.info(f"Dashboard {dashboard_id} 已撤销用户 {target_user_id} 的访问权限")

    def update_permission(
        self,
        db: Session,
        *,
        dashboard_id: int,
        target_user_id: int,
        permission: object,
        owner_id: int
    ) -> DashboardShare:
        """修改已有分享的权限级别；分享不存在时报错而不是新建"""
        level = parse_share_permission(permission)
        self._get_owned_dashboard(db, dashboard_id, owner_id, "update permissions")

        if not crud.crud_dashboard_share.has_access(db, dashboard_id=dashboard_id, user_id=target_user_id):
            raise ShareNotFoundError()

        return crud.crud_dashboard_share.upsert(
            db,
            dashboard_id=dashboard_id,
            user_id=target_user_id,
            permission=level
        )

    def get_shared_with(self, db: Session, *, dashboard_id: int, requester_id: int) -> List[DashboardShare]:
        """获取Dashboard的分享列表（仅 owner 可查看）"""
        dashboard = crud.crud_dashboard.get_active(db, dashboard_id=dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError()
        if dashboard.owner_id != requester_id:
            raise AccessDeniedError()

        return crud.crud_dashboard_share.get_shared_users(db, dashboard_id=dashboard_id)

    def get_shared_to_me(self, db: Session, *, user_id: int) -> List[SharedDashboardItem]:
        """获取分享给当前用户的Dashboard，附带授予的权限与分享时间"""
        shares = crud.crud_dashboard_share.get_shared_to_user(db, user_id=user_id)
        items = []
        for share in shares:
            dashboard = share.dashboard
            items.append(SharedDashboardItem(
                id=dashboard.id,
                title=dashboard.title,
                description=dashboard.description,
                is_public=dashboard.is_public,
                owner=UserBrief.model_validate(dashboard.owner),
                widget_count=len(dashboard.widgets),
                shared_permission=PermissionLevel(share.permission),
                shared_at=share.created_at,
            ))
        return items

    def has_access(self, db: Session, *, dashboard_id: int, user_id: int) -> bool:
        return crud.crud_dashboard_share.has_access(db, dashboard_id=dashboard_id, user_id=user_id)

    def get_permission(self, db: Session, *, dashboard_id: int, user_id: int) -> Optional[PermissionLevel]:
        return crud.crud_dashboard_share.get_user_permission(db, dashboard_id=dashboard_id, user_id=user_id)

    def can_edit(self, db: Session, *, dashboard_id: int, user_id: int) -> bool:
        """owner 或持有 EDIT/ADMIN 分享的用户可以编辑"""
        dashboard = crud.crud_dashboard.get_active(db, dashboard_id=dashboard_id)
        if dashboard is not None and dashboard.owner_id == user_id:
            return True

        permission = self.get_permission(db, dashboard_id=dashboard_id, user_id=user_id)
        return permission is not None and permission.covers(PermissionLevel.EDIT)
