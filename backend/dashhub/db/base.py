# Import all the models, so that Base has them before
# metadata.create_all is called
from dashhub.db.base_class import Base  # noqa
from dashhub.models.user import User  # noqa
from dashhub.models.dashboard import Dashboard  # noqa
from dashhub.models.dashboard_widget import DashboardWidget  # noqa
from dashhub.models.dashboard_share import DashboardShare  # noqa
from dashhub.models.schedule import Schedule  # noqa
from dashhub.models.schedule_execution import ScheduleExecution  # noqa
