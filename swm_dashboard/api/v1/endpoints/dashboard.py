from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from swm_dashboard.core.database import get_db
from swm_dashboard.services.gram_panchayat_service import GramPanchayatService
from swm_dashboard.services.performance_metrics_service import PerformanceMetricsService

router = APIRouter()


@router.get("/summary", response_model=dict, status_code=status.HTTP_200_OK)
def get_dashboard_summary(db: Session = Depends(get_db)):
    """Totals for the dashboard cards: panchayats, households, revenue and average compliance"""
    panchayats = GramPanchayatService(db).list()
    return {
        "status": "success",
        "message": "Dashboard summary fetched successfully",
        "data": PerformanceMetricsService(db).dashboard_summary(panchayats),
    }


@router.get("/waste-trend", response_model=dict, status_code=status.HTTP_200_OK)
def get_waste_trend(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    """Daily wet / dry / sanitary waste totals across all panchayats"""
    points = PerformanceMetricsService(db).waste_trend(start=start, end=end)
    return {
        "status": "success",
        "message": "Waste trend fetched successfully",
        "data": points,
    }
