"""Dashboard分享 API端点"""
from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dashhub.api import deps
from dashhub.core.enums import Action, ResourceKind
from dashhub.core.exceptions import ValidationFailedError
from dashhub.schemas.auth import Identity
from dashhub.schemas.share import (
    ShareCreate,
    ShareResponse,
    ShareUpdate,
    SharedDashboardListResponse,
)
from dashhub.services.container import ServiceContainer

router = APIRouter()


@router.get("/shared", response_model=SharedDashboardListResponse)
def get_shared_dashboards(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.READ)),
) -> Any:
    """获取分享给我的Dashboard"""
    items = services.share_service.get_shared_to_me(db, user_id=identity.user_id)
    return SharedDashboardListResponse(items=items)


@router.post("/{dashboard_id}/share", response_model=ShareResponse)
def share_dashboard(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.UPDATE)),
    dashboard_id: int,
    share_in: ShareCreate,
) -> Any:
    """分享Dashboard（按用户ID或邮箱）"""
    if share_in.user_id is not None:
        return services.share_service.share(
            db,
            dashboard_id=dashboard_id,
            target_user_id=share_in.user_id,
            permission=share_in.permission,
            owner_id=identity.user_id
        )
    if share_in.email:
        return services.share_service.share_by_email(
            db,
            dashboard_id=dashboard_id,
            email=share_in.email,
            permission=share_in.permission,
            owner_id=identity.user_id
        )
    raise ValidationFailedError("user_id or email is required")


@router.get("/{dashboard_id}/share", response_model=List[ShareResponse])
def get_dashboard_shares(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.get_current_identity),
    dashboard_id: int,
) -> Any:
    """获取Dashboard的分享列表（仅 owner）"""
    return services.share_service.get_shared_with(
        db, dashboard_id=dashboard_id, requester_id=identity.user_id
    )


@router.patch("/{dashboard_id}/share/{user_id}", response_model=ShareResponse)
def update_share_permission(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.UPDATE)),
    dashboard_id: int,
    user_id: int,
    share_in: ShareUpdate,
) -> Any:
    """修改分享权限"""
    return services.share_service.update_permission(
        db,
        dashboard_id=dashboard_id,
        target_user_id=user_id,
        permission=share_in.permission,
        owner_id=identity.user_id
    )


@router.delete("/{dashboard_id}/share/{user_id}")
def revoke_share(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.DASHBOARD, Action.UPDATE)),
    dashboard_id: int,
    user_id: int,
) -> Any:
    """撤销分享"""
    services.share_service.revoke(
        db, dashboard_id=dashboard_id, target_user_id=user_id, owner_id=identity.user_id
    )
    return {"success": True}
