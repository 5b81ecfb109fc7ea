from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response, status

from swm_dashboard.core.auth import (
    CurrentUser,
    forwarded_auth_headers,
    get_auth_provider,
    require_admin,
)
from swm_dashboard.schemas.user_admin import (
    BanUserInput,
    BulkAction,
    BulkActionRequest,
    CreateUserInput,
    ImpersonationResult,
    RevokeSessionInput,
    SetPasswordInput,
    SetRoleInput,
    UpdateUserData,
)
from swm_dashboard.services.auth_provider import AuthProvider
from swm_dashboard.services.user_admin_service import UserAdminService

router = APIRouter()


def get_user_admin_service(
    request: Request,
    auth_provider: AuthProvider = Depends(get_auth_provider),
    current_user: CurrentUser = Depends(require_admin),
) -> UserAdminService:
    return UserAdminService(
        auth_provider,
        forwarded_auth_headers(request),
        acting_user_id=current_user.user_id,
    )


def _forward_cookies(response: Response, set_cookies: List[str]) -> None:
    for cookie in set_cookies:
        response.headers.append("set-cookie", cookie)


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
def list_users(request: Request, service: UserAdminService = Depends(get_user_admin_service)):
    """
    List users through the authentication server.

    Query parameters are passed as-is (searchValue, searchField, limit, offset,
    sortBy, filterField, ...) and validated before the server is called.
    """
    return {
        "status": "success",
        "message": "Users fetched successfully",
        "data": service.list_users(dict(request.query_params)),
    }


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_user(payload: CreateUserInput, service: UserAdminService = Depends(get_user_admin_service)):
    return {
        "status": "success",
        "message": "User created successfully",
        "data": service.create_user(payload),
    }


@router.post("/stop-impersonating", response_model=dict, status_code=status.HTTP_200_OK)
def stop_impersonating(response: Response, service: UserAdminService = Depends(get_user_admin_service)):
    result = service.stop_impersonating()
    _forward_cookies(response, result.set_cookies)
    return {
        "status": "success",
        "message": "Impersonation stopped",
        "data": result,
    }


@router.post("/sessions/revoke", response_model=dict, status_code=status.HTTP_200_OK)
def revoke_session(payload: RevokeSessionInput, service: UserAdminService = Depends(get_user_admin_service)):
    service.revoke_session(payload.session_token)
    return {
        "status": "success",
        "message": "Session revoked successfully",
        "data": None,
    }


@router.post("/bulk/{action}", response_model=dict, status_code=status.HTTP_200_OK)
def bulk_action(
    action: BulkAction,
    payload: BulkActionRequest,
    service: UserAdminService = Depends(get_user_admin_service),
):
    """Apply ban / unban / delete / set_role to several users; the acting admin is skipped"""
    result = service.bulk_action(action, payload)
    return {
        "status": "success",
        "message": f"Bulk {action} completed",
        "data": result,
    }


@router.patch("/{user_id}", response_model=dict, status_code=status.HTTP_200_OK)
def update_user(
    user_id: str,
    payload: UpdateUserData,
    service: UserAdminService = Depends(get_user_admin_service),
):
    return {
        "status": "success",
        "message": "User updated successfully",
        "data": service.update_user(user_id, payload),
    }


@router.delete("/{user_id}", response_model=dict, status_code=status.HTTP_200_OK)
def delete_user(user_id: str, service: UserAdminService = Depends(get_user_admin_service)):
    service.delete_user(user_id)
    return {
        "status": "success",
        "message": "User deleted successfully",
        "data": None,
    }


@router.put("/{user_id}/role", response_model=dict, status_code=status.HTTP_200_OK)
def set_role(user_id: str, payload: SetRoleInput, service: UserAdminService = Depends(get_user_admin_service)):
    return {
        "status": "success",
        "message": "User role updated successfully",
        "data": service.set_role(user_id, payload),
    }


@router.put("/{user_id}/password", response_model=dict, status_code=status.HTTP_200_OK)
def set_password(
    user_id: str,
    payload: SetPasswordInput,
    service: UserAdminService = Depends(get_user_admin_service),
):
    service.set_password(user_id, payload)
    return {
        "status": "success",
        "message": "Password updated successfully",
        "data": None,
    }


@router.post("/{user_id}/ban", response_model=dict, status_code=status.HTTP_200_OK)
def ban_user(
    user_id: str,
    payload: Optional[BanUserInput] = None,
    service: UserAdminService = Depends(get_user_admin_service),
):
    payload = payload or BanUserInput()
    return {
        "status": "success",
        "message": "User banned successfully",
        "data": service.ban_user(user_id, payload.ban_reason, payload.ban_expires_in),
    }


@router.post("/{user_id}/unban", response_model=dict, status_code=status.HTTP_200_OK)
def unban_user(user_id: str, service: UserAdminService = Depends(get_user_admin_service)):
    return {
        "status": "success",
        "message": "User unbanned successfully",
        "data": service.unban_user(user_id),
    }


@router.post("/{user_id}/impersonate", response_model=dict, status_code=status.HTTP_200_OK)
def impersonate_user(
    user_id: str,
    response: Response,
    service: UserAdminService = Depends(get_user_admin_service),
):
    """Switch the caller's session to the given user; the client should reload afterwards"""
    result: ImpersonationResult = service.impersonate_user(user_id)
    _forward_cookies(response, result.set_cookies)
    return {
        "status": "success",
        "message": "Impersonation started",
        "data": result,
    }


@router.get("/{user_id}/sessions", response_model=dict, status_code=status.HTTP_200_OK)
def list_sessions(user_id: str, service: UserAdminService = Depends(get_user_admin_service)):
    sessions = service.list_sessions(user_id)
    return {
        "status": "success",
        "message": "Sessions fetched successfully",
        "data": sessions,
        "total": len(sessions),
    }


@router.delete("/{user_id}/sessions", response_model=dict, status_code=status.HTTP_200_OK)
def revoke_all_sessions(user_id: str, service: UserAdminService = Depends(get_user_admin_service)):
    service.revoke_all_sessions(user_id)
    return {
        "status": "success",
        "message": "All sessions revoked successfully",
        "data": None,
    }
