# app/api/routes/dashboard.py
from fastapi import APIRouter

from ..deps import DBDep, UserDep
from app.schemas.tickets import DashboardStats
from app.services.dashboard import dashboard_stats

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def stats(db: DBDep, current: UserDep):
    return await dashboard_stats(db, current)
