from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from hrdesk.errors import ApiError
from hrdesk.models import Employee, EmployeeRole
from hrdesk.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

_LOCK = threading.Lock()
_DASHBOARD_HITS: dict[str, deque[datetime]] = defaultdict(deque)

ADMIN_ROLES: frozenset[EmployeeRole] = frozenset({EmployeeRole.ADMIN, EmployeeRole.HR_ADMIN})


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    employee_id: int
    role: EmployeeRole

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cleanup_hits(ip: str, now: datetime, window: timedelta) -> None:
    queue = _DASHBOARD_HITS[ip]
    threshold = now - window
    while queue and queue[0] < threshold:
        queue.popleft()
    if not queue:
        _DASHBOARD_HITS.pop(ip, None)


def ensure_dashboard_request_allowed(ip: str) -> None:
    settings = get_settings()
    window = timedelta(minutes=settings.dashboard_rate_limit_window_minutes)
    now = _utcnow()
    with _LOCK:
        _cleanup_hits(ip, now, window)
        queue = _DASHBOARD_HITS[ip]
        if len(queue) >= settings.dashboard_rate_limit_max:
            raise ApiError(
                status_code=429,
                code="TOO_MANY_REQUESTS",
                message="Too many dashboard requests from this IP, please try again later.",
            )
        queue.append(now)


def reset_dashboard_rate_limits() -> None:
    with _LOCK:
        _DASHBOARD_HITS.clear()


def create_access_token(
    *,
    employee_id: int,
    role: EmployeeRole | str,
    expires_delta: timedelta | None = None,
) -> str:
    settings = get_settings()
    now = _utcnow()
    exp = now + (expires_delta or timedelta(minutes=settings.access_token_minutes))
    claims = {
        "sub": str(employee_id),
        "role": EmployeeRole(role).value,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "jti": str(uuid4()),
        "typ": "access",
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


def decode_token(token: str, *, expected_type: str = "access") -> CallerIdentity:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is invalid.") from exc

    if payload.get("typ") != expected_type:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token type is invalid.")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token subject is invalid.")

    try:
        role = EmployeeRole(payload.get("role"))
    except ValueError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token role is invalid.") from exc

    return CallerIdentity(employee_id=int(subject), role=role)


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CallerIdentity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Missing bearer token.")

    identity = decode_token(credentials.credentials, expected_type="access")
    request.state.actor = identity.role.value
    request.state.actor_id = str(identity.employee_id)
    return identity


def require_roles(*roles: EmployeeRole) -> Callable[..., CallerIdentity]:
    allowed = frozenset(roles)
    if not allowed:
        raise ValueError("At least one role is required.")

    def _dependency(identity: CallerIdentity = Depends(get_current_identity)) -> CallerIdentity:
        if identity.role not in allowed:
            raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")
        return identity

    return _dependency


def team_member_ids(db: Session, manager_id: int) -> list[int]:
    return list(db.scalars(select(Employee.id).where(Employee.manager_id == manager_id)).all())


def accessible_employee_ids(db: Session, identity: CallerIdentity) -> list[int] | None:
    """Employee ids the caller may read, or ``None`` for unrestricted access."""
    if identity.is_admin:
        return None
    if identity.role == EmployeeRole.MANAGER:
        return [identity.employee_id, *team_member_ids(db, identity.employee_id)]
    return [identity.employee_id]


def ensure_can_access_employee(db: Session, identity: CallerIdentity, employee_id: int) -> None:
    allowed = accessible_employee_ids(db, identity)
    if allowed is None or employee_id in allowed:
        return
    raise ApiError(status_code=403, code="FORBIDDEN", message="Access denied.")


def client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return None
