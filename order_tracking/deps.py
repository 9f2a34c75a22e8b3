# order_tracking/deps.py
from __future__ import annotations

import logging
from typing import Callable, ContextManager, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from order_tracking.core.database import get_db
from order_tracking.schemas.order import Actor
from order_tracking.schemas.status import UserRole
from order_tracking.services.errors import (
    ConcurrentModification,
    InvalidToken,
    InvalidTransition,
    ItemNotFound,
    OrderNotFound,
    StoreUnavailable,
    TrackingError,
)
from order_tracking.services.order_store import OrderStore, SqlOrderStore, session_store
from order_tracking.services.tracking_feed import ViewerContext

logger = logging.getLogger(__name__)

# Identidade vem do gateway de autenticação nestes headers.
ROLE_HEADER = "X-User-Role"
COMPANY_HEADER = "X-Company-ID"
USER_HEADER = "X-User-ID"
NAME_HEADER = "X-User-Name"


def _header(headers, name: str) -> Optional[str]:
    value = (headers.get(name) or "").strip()
    return value or None


def build_viewer(
    role: str | None,
    company_id: str | None = None,
    user_id: str | None = None,
    name: str | None = None,
) -> ViewerContext:
    """Sem papel informado o visitante é tratado como cliente anônimo."""
    raw_role = (role or UserRole.user.value).strip().lower()
    try:
        parsed_role = UserRole(raw_role)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Papel de usuário inválido")
    return ViewerContext(
        role=parsed_role,
        company_id=(company_id or "").strip() or None,
        user_id=(user_id or "").strip() or None,
        name=(name or "").strip() or None,
    )


def viewer_from_headers(headers) -> ViewerContext:
    return build_viewer(
        _header(headers, ROLE_HEADER),
        company_id=_header(headers, COMPANY_HEADER),
        user_id=_header(headers, USER_HEADER),
        name=_header(headers, NAME_HEADER),
    )


def get_viewer(request: Request) -> ViewerContext:
    viewer = viewer_from_headers(request.headers)
    request.state.viewer = viewer
    return viewer


def actor_for(viewer: ViewerContext) -> Optional[Actor]:
    if not viewer.is_staff:
        return None
    return Actor(id=viewer.user_id or "", name=viewer.name or viewer.user_id or "Equipe")


def get_store(db: Session = Depends(get_db)) -> OrderStore:
    return SqlOrderStore(db)


def get_store_scope() -> Callable[[], ContextManager[OrderStore]]:
    return session_store


def _log_access_denied(
    *,
    reason: str,
    viewer: ViewerContext,
    company_id: str | None,
    request: Request,
) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s user_company=%s company_id=%s endpoint=%s",
        reason,
        viewer.user_id,
        viewer.role.value,
        viewer.company_id,
        company_id,
        endpoint,
    )


def require_staff(request: Request, viewer: ViewerContext = Depends(get_viewer)) -> ViewerContext:
    if not viewer.is_staff:
        _log_access_denied(reason="role_denied", viewer=viewer, company_id=None, request=request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permissão insuficiente")
    if not viewer.company_id:
        _log_access_denied(reason="missing_company", viewer=viewer, company_id=None, request=request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Empresa não informada")
    return viewer


def require_company_access(
    company_id: str,
    request: Request,
    viewer: ViewerContext = Depends(require_staff),
) -> ViewerContext:
    if viewer.company_id != company_id:
        _log_access_denied(reason="company_mismatch", viewer=viewer, company_id=company_id, request=request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Empresa não autorizada")
    return viewer


def require_company_admin(
    company_id: str,
    request: Request,
    viewer: ViewerContext = Depends(require_company_access),
) -> ViewerContext:
    if viewer.role != UserRole.company_admin:
        _log_access_denied(reason="role_denied", viewer=viewer, company_id=company_id, request=request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permissão insuficiente")
    return viewer


def require_platform_admin(request: Request, viewer: ViewerContext = Depends(get_viewer)) -> ViewerContext:
    if viewer.role != UserRole.platform_admin:
        _log_access_denied(reason="role_denied", viewer=viewer, company_id=None, request=request)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permissão insuficiente")
    return viewer


_ERROR_STATUS = {
    InvalidToken: status.HTTP_400_BAD_REQUEST,
    OrderNotFound: status.HTTP_404_NOT_FOUND,
    ItemNotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    ConcurrentModification: status.HTTP_409_CONFLICT,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: TrackingError) -> HTTPException:
    status_code = next(
        (code for error_type, code in _ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    return HTTPException(status_code=status_code, detail=exc.message)
