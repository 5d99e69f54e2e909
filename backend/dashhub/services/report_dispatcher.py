"""
定时报表执行器

一次执行：
1. 按计划配置的格式渲染报表（线程池中执行，带超时）
2. 按收件人顺序并发投递（信号量限流），单个收件人失败不影响其他收件人
3. 记录执行结果，并在尝试投递后更新 last_run

execute_job 从不向调用方抛异常。next_run 不在这里重新计算，只有修改 CRON 表达式时才会更新。
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core.config import settings
from dashhub.core.enums import ExecutionStatus, ExportFormat
from dashhub.db.session import SessionLocal, get_db_session
from dashhub.services.report_renderer import ReportArtifact
from dashhub.services.schedule_registry import ScheduleJob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryFailure:
    recipient: str
    error: str


@dataclass
class ExecutionResult:
    schedule_id: int
    status: ExecutionStatus
    started_at: datetime
    duration_ms: int = 0
    delivered: List[str] = field(default_factory=list)
    failures: List[DeliveryFailure] = field(default_factory=list)
    error_message: Optional[str] = None
    # 渲染成功、已经尝试投递
    attempted: bool = False


class DatabaseExecutionRecorder:
    """将执行结果写入 schedule_executions，并更新 schedules.last_run"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def record(self, result: ExecutionResult) -> None:
        with get_db_session(self._session_factory) as db:
            record = crud.crud_schedule_execution.create_record(
                db,
                schedule_id=result.schedule_id,
                status=result.status,
                started_at=result.started_at,
                duration_ms=result.duration_ms,
                delivered_count=len(result.delivered),
                failed_recipients=[
                    {"recipient": f.recipient, "error": f.error} for f in result.failures
                ],
                error_message=result.error_message
            )
            if record is None:
                logger.info(f"计划 {result.schedule_id} 已被删除，跳过执行记录")
                return

            if result.attempted:
                crud.crud_schedule.mark_last_run(
                    db, schedule_id=result.schedule_id, run_at=datetime.utcnow()
                )


class ReportDispatcher:
    """
    报表执行器

    Args:
        renderer: 提供 ``render_dashboard(dashboard_id, fmt) -> ReportArtifact``
        transport: 提供 ``send(to_email, subject, attachments)``
        recorder: 提供 ``record(result)``
        max_concurrent_deliveries: 同一次执行中并发投递的上限
    """

    def __init__(
        self,
        renderer: Any,
        transport: Any,
        recorder: Any,
        max_concurrent_deliveries: int = settings.MAX_CONCURRENT_DELIVERIES,
        render_timeout: float = settings.REPORT_RENDER_TIMEOUT_SECONDS
    ):
        self._renderer = renderer
        self._transport = transport
        self._recorder = recorder
        self._max_concurrent = max(1, max_concurrent_deliveries)
        self._render_timeout = render_timeout

    async def execute_job(self, job: ScheduleJob) -> ExecutionResult:
        """执行一次计划；所有异常都在内部记录，不向调用方抛出"""
        started_at = datetime.utcnow()
        start_time = time.time()
        result = ExecutionResult(
            schedule_id=job.id, status=ExecutionStatus.FAILED, started_at=started_at
        )
        logger.info(f"开始执行计划 {job.id} ({job.name})，Dashboard {job.dashboard_id}")

        try:
            try:
                artifacts = await self._render(job)
            except asyncio.TimeoutError:
                result.error_message = f"Report generation timed out after {self._render_timeout}s"
                logger.error(f"计划 {job.id} 渲染报表超时（{self._render_timeout}s）")
            except Exception as e:
                result.error_message = f"Report generation failed: {e}"
                logger.error(f"计划 {job.id} 渲染报表失败: {e}")
            else:
                result.attempted = True
                await self._deliver_all(job, artifacts, result)
                if result.delivered:
                    result.status = ExecutionStatus.SUCCESS
                else:
                    result.error_message = "Delivery failed for all recipients"
        except Exception as e:
            result.error_message = str(e)
            logger.exception(f"计划 {job.id} 执行异常")

        result.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"计划 {job.id} 执行完成: 状态={result.status.value}, 成功={len(result.delivered)}, "
            f"失败={len(result.failures)}, 耗时={result.duration_ms}ms"
        )

        await self._record(result)
        return result

    async def _render(self, job: ScheduleJob) -> List[ReportArtifact]:
        loop = asyncio.get_running_loop()
        formats = job.formats or (ExportFormat.PDF,)
        artifacts = []
        for fmt in formats:
            artifact = await asyncio.wait_for(
                loop.run_in_executor(None, self._renderer.render_dashboard, job.dashboard_id, fmt),
                timeout=self._render_timeout
            )
            artifacts.append(artifact)
        return artifacts

    async def _deliver_all(
        self,
        job: ScheduleJob,
        artifacts: List[ReportArtifact],
        result: ExecutionResult
    ) -> None:
        semaphore = asyncio.Semaphore(self._max_concurrent)
        subject = f"Dashboard Report: {job.name}"
        loop = asyncio.get_running_loop()

        async def deliver_with_limit(recipient: str):
            async with semaphore:
                await loop.run_in_executor(
                    None, self._transport.send, recipient, subject, artifacts
                )

        # 按配置顺序发起投递，任务结果与收件人一一对应
        outcomes = await asyncio.gather(
            *(deliver_with_limit(recipient) for recipient in job.recipients),
            return_exceptions=True
        )

        for recipient, outcome in zip(job.recipients, outcomes):
            if isinstance(outcome, BaseException):
                result.failures.append(DeliveryFailure(recipient=recipient, error=str(outcome)))
                logger.warning(f"计划 {job.id} 投递到 {recipient} 失败: {outcome}")
            else:
                result.delivered.append(recipient)

    async def _record(self, result: ExecutionResult) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._recorder.record, result)
        except Exception:
            logger.exception(f"计划 {result.schedule_id} 执行记录写入失败")
