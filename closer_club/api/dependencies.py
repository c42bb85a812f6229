"""Bearer-token gate and role guards for the learning endpoints.

Tokens are issued by the identity service; this module only verifies them
and turns the claims into a Principal.  Guards are plain dependency
factories, exported as ``Annotated`` aliases so routes read as
``principal: LearnerPrincipal``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from closer_club.middleware.request_context import bind_user
from closer_club.models.principal import (
    ROLE_ADMIN,
    ROLE_AGENT,
    ROLE_TEAM_LEADER,
    Principal,
)
from closer_club.services import token_service

logger = logging.getLogger(__name__)

# Token endpoint belongs to the identity service; listed for the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

LEARNER_ROLES = frozenset({ROLE_AGENT, ROLE_TEAM_LEADER})
SUPERVISOR_ROLES = frozenset({ROLE_ADMIN, ROLE_TEAM_LEADER})


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    request: Request,
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Validate the bearer token and return the caller.

    Every business endpoint depends on this, directly or through a role
    guard, so an unauthenticated call never reaches a repository.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    bind_user(request, principal.user_id)
    logger.debug("Token accepted  roles=%s", sorted(principal.roles))
    return principal


def require_any_role(roles: Iterable[str]) -> Callable[..., Principal]:
    """Dependency factory: 403 unless the caller holds one of ``roles``."""
    allowed = frozenset(roles)

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if principal.has_any_role(allowed):
            return principal
        logger.warning(
            "Access denied: user=%s roles=%s needs one of=%s",
            principal.user_id,
            sorted(principal.roles),
            sorted(allowed),
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )

    return _guard


def require_role(role: str) -> Callable[..., Principal]:
    return require_any_role((role,))


AnyPrincipal = Annotated[Principal, Depends(require_user)]
AdminPrincipal = Annotated[Principal, Depends(require_role(ROLE_ADMIN))]
LearnerPrincipal = Annotated[Principal, Depends(require_any_role(LEARNER_ROLES))]
SupervisorPrincipal = Annotated[Principal, Depends(require_any_role(SUPERVISOR_ROLES))]
