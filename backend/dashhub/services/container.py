"""
服务容器

每个进程构造一次（应用工厂中），通过 app.state.services 传递给请求处理函数，
测试中可以传入替身实现。
"""
import logging
from functools import partial
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from dashhub.core.config import Settings, settings as default_settings
from dashhub.db.session import SessionLocal
from dashhub.services.dashboard_access_guard import DashboardAccessGuard
from dashhub.services.mail_transport import SmtpMailTransport
from dashhub.services.report_dispatcher import DatabaseExecutionRecorder, ReportDispatcher
from dashhub.services.report_renderer import DashboardReportRenderer
from dashhub.services.schedule_registry import ScheduleRegistry
from dashhub.services.schedule_service import ScheduleService, load_active_jobs
from dashhub.services.share_service import ShareService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """持有进程内唯一的一组服务实例"""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        config: Optional[Settings] = None,
        renderer: Any = None,
        transport: Any = None,
        recorder: Any = None
    ):
        self.config = config or default_settings
        self.session_factory = session_factory

        self.share_service = ShareService()
        self.access_guard = DashboardAccessGuard()
        self.dispatcher = ReportDispatcher(
            renderer=renderer or DashboardReportRenderer(session_factory),
            transport=transport or SmtpMailTransport(self.config),
            recorder=recorder or DatabaseExecutionRecorder(session_factory),
            max_concurrent_deliveries=self.config.MAX_CONCURRENT_DELIVERIES,
            render_timeout=self.config.REPORT_RENDER_TIMEOUT_SECONDS,
        )
        self.registry = ScheduleRegistry(
            self.dispatcher,
            job_loader=partial(load_active_jobs, session_factory),
        )
        self.schedule_service = ScheduleService(self.registry, self.access_guard)

    async def start(self) -> None:
        if not self.config.SCHEDULER_ENABLED:
            logger.info("SCHEDULER_ENABLED=false，跳过定时报表调度")
            return
        await self.registry.start()

    def stop(self) -> None:
        if self.registry.is_running:
            self.registry.stop()
