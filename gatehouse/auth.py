# gatehouse/auth.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .domain.enums import ActorType
from .errors import Forbidden, Unauthenticated
from .models import AppUser, CommunityAdmin, SecurityGuard, SuperAdmin


@dataclass(frozen=True)
class Principal:
    id: int
    type: ActorType
    community_id: Optional[int] = None
    apartment_id: Optional[int] = None


_IDENTITY_TABLES = {
    ActorType.USER: AppUser,
    ActorType.ADMIN: CommunityAdmin,
    ActorType.SUPERADMIN: SuperAdmin,
    ActorType.SECURITY: SecurityGuard,
}


# -------------------------
# JWT helpers
# -------------------------
def create_access_token(
    *,
    actor_id: int,
    actor_type: ActorType | str,
    community_id: Optional[int] = None,
    apartment_id: Optional[int] = None,
    minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(int(actor_id)),
        "type": ActorType(actor_type).value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=int(minutes or settings.jwt_exp_minutes))).timestamp()),
    }
    if community_id is not None:
        payload["communityId"] = int(community_id)
    if apartment_id is not None:
        payload["apartmentId"] = int(apartment_id)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return dict(jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]))
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")


def _as_int(v: Any, what: str) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        raise Unauthenticated(f"Invalid {what}")


def _actor_type(raw: Any) -> ActorType:
    try:
        return ActorType(str(raw or "").strip().lower())
    except ValueError:
        raise Unauthenticated("Unknown actor type")


def _principal_from_claims(db: Session, claims: dict[str, Any]) -> Principal:
    actor_id = _as_int(claims.get("sub") or claims.get("id"), "subject")
    if actor_id is None:
        raise Unauthenticated("Token missing sub")
    actor_type = _actor_type(claims.get("type"))

    row = db.get(_IDENTITY_TABLES[actor_type], actor_id)
    if row is None:
        raise Unauthenticated(f"Unknown {actor_type.value}")

    # staff are pinned to the community on their own row
    community_id = _as_int(claims.get("communityId"), "communityId")
    if actor_type in (ActorType.ADMIN, ActorType.SECURITY):
        community_id = int(row.community_id)

    return Principal(
        id=actor_id,
        type=actor_type,
        community_id=community_id,
        apartment_id=_as_int(claims.get("apartmentId"), "apartmentId"),
    )


# -------------------------
# get_principal
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) Authorization: Bearer <jwt>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    """
    token = None
    if authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    principal: Optional[Principal] = None
    if token:
        principal = _principal_from_claims(db, decode_access_token(token))
    elif settings.auth_mode == "dev":
        actor_id = request.headers.get(settings.dev_header_actor_id)
        if actor_id:
            principal = _principal_from_claims(
                db,
                {
                    "sub": actor_id,
                    "type": request.headers.get(settings.dev_header_actor_type) or ActorType.USER.value,
                    "communityId": request.headers.get(settings.dev_header_community_id),
                },
            )

    if principal is None:
        raise Unauthenticated("Not authenticated")

    request.state.principal = principal
    return principal


def require_actor(*types: ActorType):
    allowed = frozenset(ActorType(t) for t in types)

    def _dep(p: Principal = Depends(get_principal)) -> Principal:
        if p.type not in allowed:
            raise Forbidden(f"Requires actor type in {sorted(t.value for t in allowed)}")
        return p

    return _dep


require_user = require_actor(ActorType.USER)
require_admin = require_actor(ActorType.ADMIN)
