from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from swm_dashboard.core.auth import forwarded_auth_headers, get_auth_provider
from swm_dashboard.core.database import get_db
from swm_dashboard.core.exceptions import AppError
from swm_dashboard.core.logging import get_logger
from swm_dashboard.schemas.gram_panchayat import (
    CreateGramPanchayatRequest,
    GramPanchayatUpdate,
    MRFMappingRequest,
)
from swm_dashboard.schemas.performance_metrics import PerformanceMetricsCreate
from swm_dashboard.services.auth_provider import AuthProvider
from swm_dashboard.services.gram_panchayat_service import GramPanchayatService
from swm_dashboard.services.performance_metrics_service import PerformanceMetricsService

router = APIRouter()
logger = get_logger("api.gram_panchayats")

NOT_FOUND = "Gram Panchayat not found"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
def list_gram_panchayats(db: Session = Depends(get_db)):
    """List all gram panchayats"""
    try:
        gram_panchayats = GramPanchayatService(db).list()
        return {
            "status": "success",
            "message": "Gram panchayats fetched successfully",
            "data": gram_panchayats,
            "total": len(gram_panchayats),
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error fetching gram panchayats: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch gram panchayats: {str(e)}",
        )


@router.get("/{gp_id}", response_model=dict, status_code=status.HTTP_200_OK)
def get_gram_panchayat(gp_id: str, db: Session = Depends(get_db)):
    gram_panchayat = GramPanchayatService(db).get_by_id(gp_id)
    if gram_panchayat is None:
        raise _not_found()
    return {
        "status": "success",
        "message": "Gram panchayat fetched successfully",
        "data": gram_panchayat,
    }


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_gram_panchayat(
    request: Request,
    payload: CreateGramPanchayatRequest,
    db: Session = Depends(get_db),
    auth_provider: AuthProvider = Depends(get_auth_provider),
):
    """Create a gram panchayat and the user account that administers it"""
    try:
        service = GramPanchayatService(db, auth_provider, forwarded_auth_headers(request))
        gram_panchayat = service.create(str(payload.email), payload.password, payload.data)
        return {
            "status": "success",
            "message": "Gram panchayat created successfully",
            "data": gram_panchayat,
        }
    except (HTTPException, AppError):
        raise
    except Exception as e:
        logger.error(f"Error creating gram panchayat: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create gram panchayat: {str(e)}",
        )


@router.patch("/{gp_id}", response_model=dict, status_code=status.HTTP_200_OK)
def update_gram_panchayat(gp_id: str, changes: GramPanchayatUpdate, db: Session = Depends(get_db)):
    """Partially update a gram panchayat; only the supplied fields change"""
    gram_panchayat = GramPanchayatService(db).update(gp_id, changes.to_changes())
    if gram_panchayat is None:
        raise _not_found()
    return {
        "status": "success",
        "message": "Gram panchayat updated successfully",
        "data": gram_panchayat,
    }


@router.delete("/{gp_id}", response_model=dict, status_code=status.HTTP_200_OK)
def delete_gram_panchayat(gp_id: str, db: Session = Depends(get_db)):
    if not GramPanchayatService(db).delete(gp_id):
        raise _not_found()
    return {
        "status": "success",
        "message": "Gram panchayat deleted successfully",
        "data": None,
    }


@router.put("/{gp_id}/mrf", response_model=dict, status_code=status.HTTP_200_OK)
def map_mrf(gp_id: str, mapping: MRFMappingRequest, db: Session = Depends(get_db)):
    gram_panchayat = GramPanchayatService(db).map_mrf(gp_id, mapping.mrf_unit_id, mapping.mrf_unit_name)
    if gram_panchayat is None:
        raise _not_found()
    return {
        "status": "success",
        "message": "MRF mapped successfully",
        "data": gram_panchayat,
    }


@router.delete("/{gp_id}/mrf", response_model=dict, status_code=status.HTTP_200_OK)
def unmap_mrf(gp_id: str, db: Session = Depends(get_db)):
    gram_panchayat = GramPanchayatService(db).unmap_mrf(gp_id)
    if gram_panchayat is None:
        raise _not_found()
    return {
        "status": "success",
        "message": "MRF unmapped successfully",
        "data": gram_panchayat,
    }


@router.get("/{gp_id}/metrics/latest", response_model=dict, status_code=status.HTTP_200_OK)
def get_latest_metrics(gp_id: str, db: Session = Depends(get_db)):
    """Most recent observation for the panchayat; data is null when none exists"""
    metrics = PerformanceMetricsService(db).latest_for(gp_id)
    return {
        "status": "success",
        "message": "Latest performance metrics fetched successfully",
        "data": metrics,
    }


@router.get("/{gp_id}/metrics", response_model=dict, status_code=status.HTTP_200_OK)
def get_metrics_history(
    gp_id: str,
    start: Optional[datetime] = Query(None, description="Earliest dateRecorded (inclusive)"),
    end: Optional[datetime] = Query(None, description="Latest dateRecorded (inclusive)"),
    order: Literal["asc", "desc"] = Query("asc", description="Sort by dateRecorded"),
    db: Session = Depends(get_db),
):
    history = PerformanceMetricsService(db).history_for(
        gp_id, start=start, end=end, newest_first=order == "desc"
    )
    return {
        "status": "success",
        "message": "Performance metrics fetched successfully",
        "data": history,
        "total": len(history),
    }


@router.post("/{gp_id}/metrics", response_model=dict, status_code=status.HTTP_201_CREATED)
def record_metrics(gp_id: str, payload: PerformanceMetricsCreate, db: Session = Depends(get_db)):
    metrics = PerformanceMetricsService(db).record(gp_id, payload)
    return {
        "status": "success",
        "message": "Performance metrics recorded successfully",
        "data": metrics,
    }
