from fastapi import APIRouter, Depends

from swm_dashboard.api.v1.endpoints import admin_users, dashboard, gram_panchayats, mrfs
from swm_dashboard.core.auth import get_current_user

api_router = APIRouter()

signed_in = [Depends(get_current_user)]

api_router.include_router(
    gram_panchayats.router, prefix="/gram-panchayats", tags=["gram-panchayats"], dependencies=signed_in
)
api_router.include_router(mrfs.router, prefix="/mrfs", tags=["mrfs"], dependencies=signed_in)
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"], dependencies=signed_in)
# Admin routes check the role through require_admin on every endpoint
api_router.include_router(admin_users.router, prefix="/admin/users", tags=["admin-users"])
