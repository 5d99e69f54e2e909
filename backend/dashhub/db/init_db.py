import logging

from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core.enums import ExportFormat, PermissionLevel, Role
from dashhub.core.cron import next_fire_time, to_utc_naive
from dashhub.db.base import Base
from dashhub.db.session import SessionLocal, engine
from dashhub.models.dashboard_widget import DashboardWidget
from dashhub.models.schedule import Schedule

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"


def init_db(db: Session) -> None:
    # Create tables
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created")


def create_initial_data(db: Session) -> None:
    """写入演示数据（已存在则跳过）"""
    if crud.user.get_by_email(db, email="admin@example.com"):
        logger.info("Demo data already exists, skipping")
        return

    admin = crud.user.create_user(
        db, email="admin@example.com", name="Admin User", password=DEMO_PASSWORD, role=Role.ADMIN
    )
    analyst = crud.user.create_user(
        db, email="analyst@example.com", name="Analyst User", password=DEMO_PASSWORD, role=Role.ANALYST
    )
    viewer = crud.user.create_user(
        db, email="viewer@example.com", name="Viewer User", password=DEMO_PASSWORD, role=Role.VIEWER
    )

    sales = crud.crud_dashboard.create_dashboard(
        db,
        owner_id=admin.id,
        title="Sales Overview",
        description="Monthly revenue and order volume",
        is_public=True
    )
    db.add_all([
        DashboardWidget(
            dashboard_id=sales.id,
            title="Monthly Revenue",
            widget_type="chart",
            data_source="sales",
            data_cache={
                "columns": ["month", "revenue"],
                "data": [
                    {"month": "2024-01", "revenue": 120000},
                    {"month": "2024-02", "revenue": 135500},
                    {"month": "2024-03", "revenue": 128300},
                ],
            },
        ),
        DashboardWidget(
            dashboard_id=sales.id,
            title="Total Orders",
            widget_type="metric",
            data_source="orders",
            data_cache={"columns": ["value"], "data": [{"value": 3421}]},
        ),
    ])
    db.commit()

    ops = crud.crud_dashboard.create_dashboard(
        db, owner_id=analyst.id, title="Operations", description="Inventory health"
    )

    # 通过存储层直接写入：ADMIN 级分享不能经由分享接口创建
    crud.crud_dashboard_share.upsert(db, dashboard_id=sales.id, user_id=analyst.id, permission=PermissionLevel.ADMIN)
    crud.crud_dashboard_share.upsert(db, dashboard_id=ops.id, user_id=viewer.id, permission=PermissionLevel.VIEW)

    cron_expr = "0 9 * * 1"
    db.add(Schedule(
        owner_id=admin.id,
        dashboard_id=sales.id,
        name="Weekly Sales Report",
        cron_expr=cron_expr,
        recipients=["admin@example.com", "analyst@example.com"],
        formats=[ExportFormat.PDF.value, ExportFormat.XLSX.value],
        is_active=True,
        next_run=to_utc_naive(next_fire_time(cron_expr)),
    ))
    db.commit()
    logger.info("Demo data created")


def main() -> None:
    db = SessionLocal()
    try:
        init_db(db)
        create_initial_data(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
