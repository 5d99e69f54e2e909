# Import and re-export schema classes
from dashhub.schemas.auth import Identity, UserBrief
from dashhub.schemas.dashboard import (
    DashboardUpdate,
    DashboardDetail,
    EffectivePermissionResponse,
)
from dashhub.schemas.share import (
    ShareCreate,
    ShareUpdate,
    ShareResponse,
    SharedDashboardItem,
    SharedDashboardListResponse,
)
from dashhub.schemas.schedule import (
    ScheduleCreate,
    ScheduleUpdate,
    ScheduleResponse,
    ScheduleExecutionResponse,
    RunNowResponse,
)
