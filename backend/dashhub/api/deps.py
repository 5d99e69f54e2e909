from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from dashhub import crud
from dashhub.core.enums import Action, ResourceKind
from dashhub.core.exceptions import InsufficientPermissionsError, UnauthenticatedError
from dashhub.core.security import verify_token
from dashhub.schemas.auth import Identity
from dashhub.services.container import ServiceContainer
from dashhub.services.permission_evaluator import check_permission

# OAuth2 scheme for token extraction
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_db(services: ServiceContainer = Depends(get_services)) -> Generator:
    """异常时回滚，请求结束后关闭会话"""
    db = services.session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_current_identity(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme)
) -> Identity:
    """
    Resolve the authenticated (user_id, role) pair from the bearer token.

    The role is re-read from the database so a role change applies without re-login.

    Raises:
        UnauthenticatedError: token missing, invalid or expired, or user not found
    """
    if not token:
        raise UnauthenticatedError()

    payload = verify_token(token)
    if payload is None:
        raise UnauthenticatedError("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthenticatedError("Invalid or expired token")

    role = crud.user.get_role(db, user_id=user_id)
    if role is None:
        raise UnauthenticatedError("User not found")

    return Identity(user_id=user_id, role=role)


def require_permission(resource: ResourceKind, action: Action):
    """
    Permission checker dependency factory.

    Usage:
        @router.post("/", dependencies=[Depends(require_permission(ResourceKind.SCHEDULE, Action.CREATE))])
    """
    def permission_checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if not check_permission(identity.role, resource, action):
            raise InsufficientPermissionsError(
                f"No permission to {Action(action).value} {ResourceKind(resource).value}"
            )
        return identity

    return permission_checker
