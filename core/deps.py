import logging
from typing import Annotated  # Use typing.Annotated for Python 3.9+

from fastapi import Depends, HTTPException, Request, status

from core.firebase import get_firestore_client, verify_id_token
from models.user import RequestContext, UserRole
from services.clock_engine import ClockEngine
from services.container import Container
from services.perimeter_registry import PerimeterRegistry
from services.shift_store import ShiftStore

logger = logging.getLogger(__name__)

# Standard credentials exception
CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def _parse_role(raw_role) -> UserRole:
    # Profiles written before roles existed default to the least privileged role
    try:
        return UserRole(str(raw_role or UserRole.CARE_WORKER.value).upper())
    except ValueError:
        return UserRole.CARE_WORKER


# Checks the Firebase Auth Token and Builds the Typed Request Context
async def get_current_user(request: Request) -> RequestContext:
    # 1) Extract & Analyze Authorization Header
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise CREDENTIALS_EXCEPTION
    token = auth_header.split(" ", 1)[1]

    # 2) Verify This Points to a Real User Account
    try:
        decoded = verify_id_token(token)
    except Exception:
        raise CREDENTIALS_EXCEPTION
    uid = decoded.get("uid")
    if not uid:
        raise CREDENTIALS_EXCEPTION

    # 3) Fetch the Firestore user profile
    try:
        snapshot = get_firestore_client().collection("users").document(uid).get()
    except Exception as e:
        logger.error(f"Firestore error fetching profile for {uid}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not fetch user profile.",
        )
    if not snapshot.exists:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found in Firestore",
        )
    profile = snapshot.to_dict() or {}

    # 4) Every clock operation is scoped to the worker's organization
    organization_id = (profile.get("organizationId") or "").strip()
    if not organization_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User profile is not linked to an organization.",
        )

    return RequestContext(
        worker_id=uid,
        role=_parse_role(profile.get("role")),
        organization_id=organization_id,
        name=profile.get("displayName", ""),
        email=profile.get("email"),
    )


# Manager Role Check Dependency
async def require_manager_role(
    current_user: Annotated[RequestContext, Depends(get_current_user)]
) -> RequestContext:
    # Check That User Has Adequate Permissions
    if not current_user.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User doesn't have sufficient privileges for this action",
        )

    # Passes Check Endpoint
    return current_user


# Service Objects Built at Startup (see main.lifespan)
def get_container(request: Request) -> Container:
    return request.app.state.container


def get_clock_engine(container: Annotated[Container, Depends(get_container)]) -> ClockEngine:
    return container.clock_engine


def get_shift_store(container: Annotated[Container, Depends(get_container)]) -> ShiftStore:
    return container.shift_store


def get_perimeter_registry(
    container: Annotated[Container, Depends(get_container)]
) -> PerimeterRegistry:
    return container.perimeter_registry
