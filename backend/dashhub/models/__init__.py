# 导入所有模型，保证 relationship 的字符串引用可以解析
from dashhub.models.user import User
from dashhub.models.dashboard import Dashboard
from dashhub.models.dashboard_widget import DashboardWidget
from dashhub.models.dashboard_share import DashboardShare
from dashhub.models.schedule import Schedule
from dashhub.models.schedule_execution import ScheduleExecution
