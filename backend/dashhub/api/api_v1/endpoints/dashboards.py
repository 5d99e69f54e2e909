"""Dashboard API端点（权限相关）"""
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.api import deps
from dashhub.core.enums import Action, ResourceKind
from dashhub.schemas.auth import Identity
from dashhub.schemas.dashboard import DashboardDetail, DashboardUpdate, EffectivePermissionResponse
from dashhub.services.container import ServiceContainer

router = APIRouter()


def _detail(services: ServiceContainer, db: Session, dashboard_id: int, user_id: int) -> DashboardDetail:
    guard = services.access_guard
    dashboard = guard.get_dashboard(db, dashboard_id)
    detail = DashboardDetail.model_validate(dashboard)
    detail.permission_level = guard.resolve_permission(db, dashboard, user_id)
    return detail


@router.get("/{dashboard_id}", response_model=DashboardDetail)
def get_dashboard(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.READ)),
    dashboard_id: int,
) -> Any:
    """获取Dashboard详情"""
    services.access_guard.verify_read_permission(db, dashboard_id, identity.user_id)
    return _detail(services, db, dashboard_id, identity.user_id)


@router.get("/{dashboard_id}/permission", response_model=EffectivePermissionResponse)
def get_dashboard_permission(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.get_current_identity),
    dashboard_id: int,
) -> Any:
    """获取当前用户的有效权限"""
    permission = services.access_guard.get_user_permission(db, dashboard_id, identity.user_id)
    return EffectivePermissionResponse(
        dashboard_id=dashboard_id,
        permission=permission,
        has_access=permission is not None
    )


@router.put("/{dashboard_id}", response_model=DashboardDetail)
def update_dashboard(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.UPDATE)),
    dashboard_id: int,
    dashboard_in: DashboardUpdate,
) -> Any:
    """更新Dashboard基本信息（需要 EDIT 及以上）"""
    services.access_guard.verify_modify_permission(db, dashboard_id, identity.user_id)
    dashboard = services.access_guard.get_dashboard(db, dashboard_id)
    crud.crud_dashboard.update(db, db_obj=dashboard, obj_in=dashboard_in)
    return _detail(services, db, dashboard_id, identity.user_id)


@router.delete("/{dashboard_id}")
def delete_dashboard(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.DELETE)),
    dashboard_id: int,
) -> Any:
    """删除Dashboard（软删除，owner 或持有 ADMIN 分享的用户）"""
    services.access_guard.verify_delete_permission(db, dashboard_id, identity.user_id)
    crud.crud_dashboard.soft_delete(db, dashboard_id=dashboard_id)
    return {"success": True}
