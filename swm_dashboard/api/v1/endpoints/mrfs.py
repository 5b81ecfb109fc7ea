from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from swm_dashboard.core.database import get_db
from swm_dashboard.schemas.mrf import MRFCreate, MRFUpdate
from swm_dashboard.services.mrf_service import MRFService

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="MRF not found")


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
def list_mrfs(db: Session = Depends(get_db)):
    mrfs = MRFService(db).list()
    return {
        "status": "success",
        "message": "MRFs fetched successfully",
        "data": mrfs,
        "total": len(mrfs),
    }


# Declared before /{mrf_id} so "options" is not taken for an id
@router.get("/options", response_model=dict, status_code=status.HTTP_200_OK)
def list_mrf_unit_options(db: Session = Depends(get_db)):
    """Unit id / name pairs for MRF mapping pickers"""
    return {
        "status": "success",
        "message": "MRF unit options fetched successfully",
        "data": MRFService(db).unit_options(),
    }


@router.get("/{mrf_id}", response_model=dict, status_code=status.HTTP_200_OK)
def get_mrf(mrf_id: str, db: Session = Depends(get_db)):
    mrf = MRFService(db).get_by_id(mrf_id)
    if mrf is None:
        raise _not_found()
    return {
        "status": "success",
        "message": "MRF fetched successfully",
        "data": mrf,
    }


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_mrf(payload: MRFCreate, db: Session = Depends(get_db)):
    return {
        "status": "success",
        "message": "MRF created successfully",
        "data": MRFService(db).create(payload),
    }


@router.patch("/{mrf_id}", response_model=dict, status_code=status.HTTP_200_OK)
def update_mrf(mrf_id: str, changes: MRFUpdate, db: Session = Depends(get_db)):
    mrf = MRFService(db).update(mrf_id, changes.to_changes())
    if mrf is None:
        raise _not_found()
    return {
        "status": "success",
        "message": "MRF updated successfully",
        "data": mrf,
    }


@router.delete("/{mrf_id}", response_model=dict, status_code=status.HTTP_200_OK)
def delete_mrf(mrf_id: str, db: Session = Depends(get_db)):
    if not MRFService(db).delete(mrf_id):
        raise _not_found()
    return {
        "status": "success",
        "message": "MRF deleted successfully",
        "data": None,
    }
