"""
定时报表服务

负责 Schedule 的增删改查与校验，并在每次变更提交后同步调度注册表：
启用的计划在注册表中有且仅有一个 job，停用或删除的计划没有。
校验全部在写库之前完成，校验失败不会产生任何部分写入。
"""
import logging
import re
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core import cron
from dashhub.core.config import settings
from dashhub.core.enums import ExportFormat
from dashhub.core.exceptions import (
    AccessDeniedError,
    InvalidCronExpressionError,
    InvalidEmailError,
    ScheduleNotFoundError,
    ValidationFailedError,
)
from dashhub.db.session import get_db_session
from dashhub.models.schedule import Schedule
from dashhub.models.schedule_execution import ScheduleExecution
from dashhub.schemas.schedule import ScheduleCreate, ScheduleUpdate
from dashhub.services.dashboard_access_guard import DashboardAccessGuard
from dashhub.services.schedule_registry import ScheduleJob, ScheduleRegistry

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: object) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.match(email) is not None


def validate_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationFailedError("Schedule name is required", details={"field": "name"})
    return name.strip()


def validate_cron(expr: Optional[str]) -> str:
    if not cron.is_valid_cron_expression(expr):
        raise InvalidCronExpressionError(details={"cron_expr": expr})
    return " ".join(cron.split_cron_fields(expr))


def validate_recipients(recipients: Optional[List[str]]) -> List[str]:
    if not recipients:
        raise ValidationFailedError("At least one recipient is required", details={"field": "recipients"})
    for email in recipients:
        if not is_valid_email(email):
            raise InvalidEmailError(f"Invalid email: {email}", details={"email": email})
    return list(recipients)


def validate_formats(formats: Optional[List[str]]) -> List[str]:
    if not formats:
        return [ExportFormat.PDF.value]
    result = []
    for value in formats:
        try:
            fmt = ExportFormat(str(value).upper())
        except ValueError:
            raise ValidationFailedError(
                f"Unsupported export format: {value}",
                details={"field": "formats", "allowed": [f.value for f in ExportFormat]}
            )
        if fmt.value not in result:
            result.append(fmt.value)
    return result


def load_active_jobs(session_factory: Callable[[], Session]) -> List[ScheduleJob]:
    """加载全部启用的计划（调度注册表启动时调用）

    单个计划数据损坏只跳过该计划；CRON 表达式由注册表在 add_job 时校验。
    """
    jobs = []
    with get_db_session(session_factory) as db:
        for schedule in crud.crud_schedule.get_active(db):
            try:
                jobs.append(ScheduleJob.from_schedule(schedule))
            except (TypeError, ValueError) as e:
                logger.error(f"计划 {schedule.id} 数据无效，跳过: {e}")
    return jobs


class ScheduleService:
    """定时报表服务"""

    def __init__(self, registry: ScheduleRegistry, access_guard: Optional[DashboardAccessGuard] = None):
        self.registry = registry
        self.access_guard = access_guard or DashboardAccessGuard()

    # ==========================================================
    # 查询
    # ==========================================================

    def get_owned_schedule(self, db: Session, schedule_id: int, user_id: int) -> Schedule:
        """获取计划并校验所有权（先 404 后 403）"""
        schedule = crud.crud_schedule.get(db, schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError()
        if schedule.owner_id != user_id:
            raise AccessDeniedError()
        return schedule

    def get_schedules_by_user(self, db: Session, *, user_id: int) -> List[Schedule]:
        return crud.crud_schedule.get_by_owner(db, owner_id=user_id)

    def get_schedule(self, db: Session, *, schedule_id: int, user_id: int) -> Schedule:
        return self.get_owned_schedule(db, schedule_id, user_id)

    def get_executions(
        self, db: Session, *, schedule_id: int, user_id: int, limit: Optional[int] = None
    ) -> List[ScheduleExecution]:
        self.get_owned_schedule(db, schedule_id, user_id)
        return crud.crud_schedule_execution.get_by_schedule(
            db, schedule_id=schedule_id, limit=limit or settings.EXECUTION_HISTORY_LIMIT
        )

    @staticmethod
    def describe_cron(expr: str) -> str:
        return cron.describe_cron(expr)

    # ==========================================================
    # 变更
    # ==========================================================

    def create_schedule(self, db: Session, *, data: ScheduleCreate, owner_id: int) -> Schedule:
        """
        创建定时报表（默认启用）并注册到调度器

        Raises:
            ValidationFailedError / InvalidCronExpressionError / InvalidEmailError
            DashboardNotFoundError: Dashboard 不存在
            AccessDeniedError: 创建者无权访问该 Dashboard
        """
        name = validate_name(data.name)
        cron_expr = validate_cron(data.cron_expr)
        recipients = validate_recipients(data.recipients)
        formats = validate_formats(data.formats)

        # Dashboard 不存在时 has_access 抛出 DashboardNotFoundError
        if not self.access_guard.has_access(db, data.dashboard_id, owner_id):
            raise AccessDeniedError()

        schedule = Schedule(
            owner_id=owner_id,
            dashboard_id=data.dashboard_id,
            name=name,
            cron_expr=cron_expr,
            recipients=recipients,
            formats=formats,
            is_active=True,
            next_run=cron.to_utc_naive(cron.next_fire_time(cron_expr)),
        )
        db.add(schedule)
        db.commit()
        db.refresh(schedule)

        self._sync_registry(schedule)
        logger.info(f"用户 {owner_id} 创建定时报表 {schedule.id}: {cron_expr}")
        return schedule

    def update_schedule(
        self, db: Session, *, schedule_id: int, data: ScheduleUpdate, user_id: int
    ) -> Schedule:
        """更新定时报表；修改 CRON 表达式时重新计算 next_run"""
        schedule = self.get_owned_schedule(db, schedule_id, user_id)
        fields = data.model_dump(exclude_unset=True)

        update_data = {}
        if "name" in fields:
            update_data["name"] = validate_name(fields["name"])
        if "cron_expr" in fields:
            update_data["cron_expr"] = validate_cron(fields["cron_expr"])
        if "recipients" in fields:
            update_data["recipients"] = validate_recipients(fields["recipients"])
        if "formats" in fields:
            # 显式 null 不等于恢复默认格式
            if fields["formats"] is None:
                raise ValidationFailedError("formats must not be null", details={"field": "formats"})
            update_data["formats"] = validate_formats(fields["formats"])
        if fields.get("is_active") is not None:
            update_data["is_active"] = bool(fields["is_active"])

        cron_expr = update_data.get("cron_expr")
        if cron_expr is not None and cron_expr != schedule.cron_expr:
            update_data["next_run"] = cron.to_utc_naive(cron.next_fire_time(cron_expr))

        schedule = crud.crud_schedule.update(db, db_obj=schedule, obj_in=update_data)
        self._sync_registry(schedule)
        return schedule

    def delete_schedule(self, db: Session, *, schedule_id: int, user_id: int) -> None:
        self.get_owned_schedule(db, schedule_id, user_id)
        self.registry.remove_job(schedule_id)
        crud.crud_schedule.remove(db, id=schedule_id)
        logger.info(f"用户 {user_id} 删除定时报表 {schedule_id}")

    def toggle_schedule(self, db: Session, *, schedule_id: int, user_id: int) -> Schedule:
        """切换启用状态并同步调度器"""
        schedule = self.get_owned_schedule(db, schedule_id, user_id)
        schedule = crud.crud_schedule.update(
            db, db_obj=schedule, obj_in={"is_active": not schedule.is_active}
        )
        self._sync_registry(schedule)
        logger.info(f"定时报表 {schedule_id} 已{'启用' if schedule.is_active else '停用'}")
        return schedule

    def run_now(self, db: Session, *, schedule_id: int, user_id: int) -> bool:
        """立即执行一次（不影响定时触发）

        Returns:
            是否已提交执行
        """
        schedule = self.get_owned_schedule(db, schedule_id, user_id)
        if self.registry.has_job(schedule_id):
            future = self.registry.fire(schedule_id)
        else:
            future = self.registry.run_once(ScheduleJob.from_schedule(schedule))
        return future is not None

    def _sync_registry(self, schedule: Schedule) -> None:
        if schedule.is_active:
            self.registry.add_job(ScheduleJob.from_schedule(schedule))
        else:
            self.registry.remove_job(schedule.id)
