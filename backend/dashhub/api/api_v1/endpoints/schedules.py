"""定时报表 API端点"""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dashhub.api import deps
from dashhub.core.enums import Action, ResourceKind
from dashhub.models.schedule import Schedule
from dashhub.schemas.auth import Identity
from dashhub.schemas.schedule import (
    RunNowResponse,
    ScheduleCreate,
    ScheduleExecutionResponse,
    ScheduleResponse,
    ScheduleUpdate,
)
from dashhub.services.container import ServiceContainer
from dashhub.services.schedule_service import ScheduleService

router = APIRouter()


def _to_response(schedule: Schedule) -> ScheduleResponse:
    response = ScheduleResponse.model_validate(schedule)
    response.description = ScheduleService.describe_cron(schedule.cron_expr)
    return response


@router.get("/", response_model=List[ScheduleResponse])
def get_schedules(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.READ)),
) -> Any:
    """获取当前用户的定时报表"""
    schedules = services.schedule_service.get_schedules_by_user(db, user_id=identity.user_id)
    return [_to_response(s) for s in schedules]


@router.post("/", response_model=ScheduleResponse)
def create_schedule(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.CREATE)),
    schedule_in: ScheduleCreate,
) -> Any:
    """创建定时报表"""
    schedule = services.schedule_service.create_schedule(
        db, data=schedule_in, owner_id=identity.user_id
    )
    return _to_response(schedule)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.READ)),
    schedule_id: int,
) -> Any:
    schedule = services.schedule_service.get_schedule(
        db, schedule_id=schedule_id, user_id=identity.user_id
    )
    return _to_response(schedule)


@router.put("/{schedule_id}", response_model=ScheduleResponse)
def update_schedule(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.UPDATE)),
    schedule_id: int,
    schedule_in: ScheduleUpdate,
) -> Any:
    """更新定时报表"""
    schedule = services.schedule_service.update_schedule(
        db, schedule_id=schedule_id, data=schedule_in, user_id=identity.user_id
    )
    return _to_response(schedule)


@router.delete("/{schedule_id}")
def delete_schedule(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.DELETE)),
    schedule_id: int,
) -> Any:
    services.schedule_service.delete_schedule(db, schedule_id=schedule_id, user_id=identity.user_id)
    return {"success": True}


@router.post("/{schedule_id}/toggle", response_model=ScheduleResponse)
def toggle_schedule(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.UPDATE)),
    schedule_id: int,
) -> Any:
    """启用 / 停用定时报表"""
    schedule = services.schedule_service.toggle_schedule(
        db, schedule_id=schedule_id, user_id=identity.user_id
    )
    return _to_response(schedule)


@router.get("/{schedule_id}/executions", response_model=List[ScheduleExecutionResponse])
def get_schedule_executions(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.READ)),
    schedule_id: int,
    limit: Optional[int] = Query(None, ge=1, le=500),
) -> Any:
    """获取执行历史（最新在前）"""
    return services.schedule_service.get_executions(
        db, schedule_id=schedule_id, user_id=identity.user_id, limit=limit
    )


@router.post("/{schedule_id}/run", response_model=RunNowResponse)
def run_schedule_now(
    *,
    db: Session = Depends(deps.get_db),
    services: ServiceContainer = Depends(deps.get_services),
    identity: Identity = Depends(deps.require_permission(ResourceKind.SCHEDULE, Action.UPDATE)),
    schedule_id: int,
) -> Any:
    """立即执行一次"""
    triggered = services.schedule_service.run_now(
        db, schedule_id=schedule_id, user_id=identity.user_id
    )
    return RunNowResponse(schedule_id=schedule_id, triggered=triggered)
