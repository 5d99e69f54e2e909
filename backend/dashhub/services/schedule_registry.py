"""
定时报表调度注册表

每个启用的 Schedule 对应一个 ScheduleJob 和一个运行在事件循环上的定时协程。

状态机: 不存在 -> SCHEDULED -> (PAUSED <-> SCHEDULED) -> 不存在

- 注册表中的 job map 是唯一的共享可变状态，所有修改都在锁内完成
- 每个定时协程绑定一个取消令牌，remove/pause 会在下一次 tick 之前生效
- 触发是 fire-and-forget：已经开始的执行允许跑完
- 同一计划上一次执行尚未完成时，新的触发会被跳过（移除后重新注册同一 id 也一样）
"""
import asyncio
import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from dashhub.core.cron import is_valid_cron_expression, next_fire_time, scheduler_now
from dashhub.core.enums import ExportFormat

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    SCHEDULED = "scheduled"
    PAUSED = "paused"


@dataclass(frozen=True)
class ScheduleJob:
    """Schedule 的运行时投影，只存在于内存中"""
    id: int
    dashboard_id: int
    owner_user_id: int
    cron_expression: str
    recipients: Tuple[str, ...]
    formats: Tuple[ExportFormat, ...] = (ExportFormat.PDF,)
    name: str = ""

    @classmethod
    def from_schedule(cls, schedule: Any) -> "ScheduleJob":
        formats = tuple(ExportFormat(f) for f in (schedule.formats or [ExportFormat.PDF.value]))
        return cls(
            id=schedule.id,
            dashboard_id=schedule.dashboard_id,
            owner_user_id=schedule.owner_id,
            cron_expression=schedule.cron_expr,
            recipients=tuple(schedule.recipients or []),
            formats=formats,
            name=schedule.name,
        )


@dataclass
class _JobEntry:
    job: ScheduleJob
    state: JobState = JobState.SCHEDULED
    cancel_token: threading.Event = field(default_factory=threading.Event)
    timer: Optional[concurrent.futures.Future] = None


class ScheduleRegistry:
    """
    调度注册表

    Args:
        dispatcher: 提供 ``async execute_job(job)`` 的执行器
        job_loader: 启动时返回全部启用计划的同步函数（在线程池中执行）
        clock: 返回当前时间（带时区）的函数
    """

    def __init__(
        self,
        dispatcher: Any,
        job_loader: Optional[Callable[[], Iterable[ScheduleJob]]] = None,
        clock: Callable[[], datetime] = scheduler_now
    ):
        self._dispatcher = dispatcher
        self._job_loader = job_loader
        self._clock = clock
        self._jobs: Dict[int, _JobEntry] = {}
        # 正在执行的计划 id，与 job map 分开保存，移除或替换 entry 不会丢失
        self._executing: Set[int] = set()
        self._lock = threading.RLock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False

    # ==========================================================
    # 生命周期
    # ==========================================================

    async def start(self) -> None:
        """
        启动注册表：加载全部启用的计划并为其启动定时器

        单个计划的 CRON 表达式损坏只会跳过该计划；加载函数本身失败时启动失败。
        """
        if self._running:
            logger.warning("调度注册表已在运行，忽略重复启动")
            return

        self._loop = asyncio.get_running_loop()
        self._running = True

        if self._job_loader is not None:
            try:
                jobs = await self._loop.run_in_executor(None, lambda: list(self._job_loader()))
            except Exception:
                logger.exception("加载定时报表失败，调度注册表未启动")
                self._running = False
                self._loop = None
                raise

            added = sum(1 for job in jobs if self.add_job(job))
            logger.info(f"调度注册表已加载 {added}/{len(jobs)} 个定时报表")

        # 启动前通过 add_job 注册、尚未挂上定时器的计划
        with self._lock:
            for entry in self._jobs.values():
                if entry.state == JobState.SCHEDULED and entry.timer is None:
                    self._arm(entry)

        logger.info("调度注册表已启动")

    def stop(self) -> None:
        """停止全部定时器并清空注册表；已经开始的执行不会被中断"""
        with self._lock:
            for entry in self._jobs.values():
                self._disarm(entry)
            count = len(self._jobs)
            self._jobs.clear()
            self._running = False
            self._loop = None
        logger.info(f"调度注册表已停止，取消 {count} 个定时器")

    @property
    def is_running(self) -> bool:
        return self._running

    # ==========================================================
    # 注册 / 移除 / 暂停 / 恢复
    # ==========================================================

    def add_job(self, job: ScheduleJob) -> bool:
        """
        注册计划（同 id 已存在时先移除再注册）

        CRON 表达式无效时记录日志并返回 False，不抛异常。
        """
        if not is_valid_cron_expression(job.cron_expression):
            logger.error(f"计划 {job.id} 的 CRON 表达式无效: {job.cron_expression!r}，未注册")
            return False

        with self._lock:
            previous = self._jobs.pop(job.id, None)
            if previous is not None:
                self._disarm(previous)

            entry = _JobEntry(job=job)
            self._jobs[job.id] = entry
            if self._loop is not None:
                self._arm(entry)

        logger.info(f"计划 {job.id} ({job.name}) 已注册: {job.cron_expression}")
        return True

    def remove_job(self, schedule_id: int) -> None:
        """移除计划，不存在时忽略"""
        with self._lock:
            entry = self._jobs.pop(schedule_id, None)
            if entry is None:
                return
            self._disarm(entry)
        logger.info(f"计划 {schedule_id} 已移除")

    def pause_job(self, schedule_id: int) -> bool:
        with self._lock:
            entry = self._jobs.get(schedule_id)
            if entry is None:
                return False
            if entry.state == JobState.PAUSED:
                return True
            self._disarm(entry)
            entry.state = JobState.PAUSED
        logger.info(f"计划 {schedule_id} 已暂停")
        return True

    def resume_job(self, schedule_id: int) -> bool:
        with self._lock:
            entry = self._jobs.get(schedule_id)
            if entry is None:
                return False
            if entry.state == JobState.SCHEDULED:
                return True
            entry.state = JobState.SCHEDULED
            entry.cancel_token = threading.Event()
            if self._loop is not None:
                self._arm(entry)
        logger.info(f"计划 {schedule_id} 已恢复")
        return True

    def has_job(self, schedule_id: int) -> bool:
        with self._lock:
            return schedule_id in self._jobs

    def get_job(self, schedule_id: int) -> Optional[ScheduleJob]:
        with self._lock:
            entry = self._jobs.get(schedule_id)
            return entry.job if entry else None

    def get_status(self) -> Dict[str, Any]:
        """返回注册表状态快照"""
        with self._lock:
            jobs: List[Dict[str, Any]] = [
                {
                    "id": entry.job.id,
                    "name": entry.job.name,
                    "cron_expression": entry.job.cron_expression,
                    "state": entry.state.value,
                    "running": entry.job.id in self._executing,
                }
                for entry in self._jobs.values()
            ]
        return {"is_running": self._running, "job_count": len(jobs), "jobs": jobs}

    # ==========================================================
    # 触发
    # ==========================================================

    def fire(
        self,
        schedule_id: int,
        _token: Optional[threading.Event] = None
    ) -> Optional[concurrent.futures.Future]:
        """
        触发一次执行（定时器到点或手动触发）

        Returns:
            执行的 Future；计划不存在、已暂停、令牌过期或上一次执行未完成时返回 None
        """
        with self._lock:
            entry = self._jobs.get(schedule_id)
            if entry is None:
                logger.debug(f"计划 {schedule_id} 不在注册表中，忽略触发")
                return None
            if _token is not None and entry.cancel_token is not _token:
                return None
            if entry.state == JobState.PAUSED:
                logger.debug(f"计划 {schedule_id} 已暂停，忽略触发")
                return None
            return self._submit(entry.job)

    def run_once(self, job: ScheduleJob) -> Optional[concurrent.futures.Future]:
        """执行一次未注册（例如已停用）的计划"""
        with self._lock:
            return self._submit(job)

    def _submit(self, job: ScheduleJob) -> Optional[concurrent.futures.Future]:
        """提交一次执行（调用方持有锁）"""
        if job.id in self._executing:
            logger.warning(f"计划 {job.id} 上一次执行尚未完成，跳过本次触发")
            return None
        if self._loop is None:
            logger.warning(f"调度注册表未启动，计划 {job.id} 无法执行")
            return None

        self._executing.add(job.id)
        future = asyncio.run_coroutine_threadsafe(self._dispatcher.execute_job(job), self._loop)
        future.add_done_callback(lambda f: self._on_execution_done(job.id, f))
        return future

    def _on_execution_done(self, schedule_id: int, future: concurrent.futures.Future) -> None:
        with self._lock:
            self._executing.discard(schedule_id)

        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"计划 {schedule_id} 执行异常: {error}")

    # ==========================================================
    # 定时器
    # ==========================================================

    def _arm(self, entry: _JobEntry) -> None:
        """在事件循环上启动定时协程（调用方持有锁）"""
        entry.timer = asyncio.run_coroutine_threadsafe(
            self._run_timer(entry.job.id, entry.job.cron_expression, entry.cancel_token),
            self._loop
        )

    def _disarm(self, entry: _JobEntry) -> None:
        entry.cancel_token.set()
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    async def _run_timer(self, schedule_id: int, cron_expression: str, token: threading.Event) -> None:
        last_fire: Optional[datetime] = None
        try:
            while not token.is_set():
                now = self._clock()
                # sleep 可能略早醒来，基准时间不能早于上一次触发点
                base = now if last_fire is None or now > last_fire else last_fire
                fire_at = next_fire_time(cron_expression, base)
                delay = (fire_at - now).total_seconds()
                if delay > 0:
                    await asyncio.sleep(delay)
                if token.is_set():
                    return
                last_fire = fire_at
                self.fire(schedule_id, _token=token)
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception(f"计划 {schedule_id} 的定时器异常退出")
