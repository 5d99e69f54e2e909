from dashhub.crud.crud_user import user
from dashhub.crud.crud_dashboard import crud_dashboard
from dashhub.crud.crud_dashboard_share import crud_dashboard_share
from dashhub.crud.crud_schedule import crud_schedule
from dashhub.crud.crud_schedule_execution import crud_schedule_execution
