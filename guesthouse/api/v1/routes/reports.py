from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from guesthouse.api.deps import require_permission
from guesthouse.db.session import get_db
from guesthouse.models.user import User
from guesthouse.services.reports_service import (
    dashboard_stats,
    load_report_data,
    revenue_series,
    room_type_ranking,
    status_distribution,
)

router = APIRouter(tags=["reports"])


@router.get("/admin/reports/dashboard")
def report_dashboard(db: Session = Depends(get_db), me: User = Depends(require_permission("dashboard"))):
    return dashboard_stats(load_report_data(db))


@router.get("/admin/reports/revenue")
def report_revenue(period: str = "monthly", db: Session = Depends(get_db),
                   me: User = Depends(require_permission("reports"))):
    try:
        return {"period": period, "series": revenue_series(load_report_data(db), period)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/admin/reports/room-types")
def report_room_types(db: Session = Depends(get_db), me: User = Depends(require_permission("reports"))):
    return room_type_ranking(load_report_data(db))


@router.get("/admin/reports/status-distribution")
def report_status_distribution(db: Session = Depends(get_db), me: User = Depends(require_permission("reports"))):
    return status_distribution(load_report_data(db))
