"""HTTP routes for user account management. All routes require authentication."""

from fastapi import APIRouter, Request, Response

from api.base import success_response
from auth.api import get_client_ip
from auth.types import UserView
from core.models import UserAdminUpdate, UserSelfUpdate
from core.services.user_service import UserService


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _user_response(request: Request, user: UserView) -> dict:
    return success_response(
        user.model_dump(mode="json", by_alias=True),
        request_id=_request_id(request),
    ).model_dump(mode="json")


def create_user_router(user_service: UserService) -> APIRouter:
    """Create user management router with injected service."""
    router = APIRouter(tags=["users"])

    @router.get("/find/{user_id}")
    def find_by_id(request: Request, user_id: int):
        """Look up an account by id."""
        return _user_response(request, user_service.get_by_id(user_id))

    @router.get("/find/surname/{surname}")
    def find_by_surname(request: Request, surname: str):
        """Look up the first account with this surname."""
        return _user_response(request, user_service.get_by_surname(surname))

    @router.get("/find/email/{email}")
    def find_by_email(request: Request, email: str):
        """Look up an account by exact email."""
        return _user_response(request, user_service.get_by_email(email))

    @router.put("/update/self")
    def update_self(request: Request, body: UserSelfUpdate):
        """Update the caller's own profile fields."""
        return _user_response(request, user_service.update_self(body))

    @router.put("/update/admin")
    def update_by_admin(request: Request, body: UserAdminUpdate):
        """Update any account, including role and email. Admin only."""
        return _user_response(request, user_service.update_by_admin(body))

    @router.delete("/delete/{user_id}", status_code=204)
    def delete_user(request: Request, user_id: int):
        """Delete an account. Allowed for the owner or an admin."""
        user_service.delete(user_id, ip_address=get_client_ip(request))
        return Response(status_code=204)

    return router
