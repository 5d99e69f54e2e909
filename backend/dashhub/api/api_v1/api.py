from fastapi import APIRouter

from dashhub.api.api_v1.endpoints import dashboards, schedules, shares

api_router = APIRouter()


@api_router.get("/")
async def api_root():
    """API根路径"""
    return {
        "message": "DashHub API",
        "version": "0.1.0",
        "status": "running",
        "endpoints": {
            "dashboards": "/api/dashboards/",
            "schedules": "/api/schedules/",
            "docs": "/docs",
            "openapi": "/openapi.json"
        }
    }

# shares 需先于 dashboards 注册，避免 /dashboards/shared 被 /{dashboard_id} 匹配
api_router.include_router(shares.router, prefix="/dashboards", tags=["shares"])
api_router.include_router(dashboards.router, prefix="/dashboards", tags=["dashboards"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
