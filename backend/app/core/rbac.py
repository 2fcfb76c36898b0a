"""Role-Based Access Control (RBAC) utilities.

Every caller of the order core is an ``Actor``: staff (admin, cashier,
kitchen) and customers authenticate with a bearer token; anyone else is a
guest identified only by the session id their client sends.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, FrozenSet, Optional

from fastapi import Depends, HTTPException, Request, status

from app.core.security import decode_access_token


class ActorRole(str, Enum):
    """Roles for RBAC."""

    ADMIN = "admin"
    CASHIER = "cashier"
    KITCHEN = "kitchen"
    CUSTOMER = "customer"
    GUEST = "guest"


# May change order status
STAFF_ROLES: FrozenSet[ActorRole] = frozenset({ActorRole.ADMIN, ActorRole.CASHIER, ActorRole.KITCHEN})

# May cancel any order regardless of owner or status
CANCEL_ROLES: FrozenSet[ActorRole] = frozenset({ActorRole.ADMIN, ActorRole.CASHIER})


@dataclass
class Actor:
    """Who is acting on an order.

    Attributes:
        role: The actor's role.
        user_id: Staff user id from the token, for staff roles.
        customer_id: Customer id from the token, for customers.
        session_id: Client session id, used to recognise guest owners.
    """

    role: ActorRole
    user_id: Optional[int] = None
    customer_id: Optional[int] = None
    session_id: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @classmethod
    def guest(cls, session_id: Optional[str] = None) -> "Actor":
        return cls(role=ActorRole.GUEST, session_id=session_id)


def _token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return token
    return request.cookies.get("access_token")


def actor_from_payload(payload: Optional[dict]) -> Optional[Actor]:
    if not payload:
        return None

    subject = payload.get("sub")
    try:
        role = ActorRole(payload.get("role"))
        subject_id = int(subject)
    except (TypeError, ValueError):
        return None

    if role == ActorRole.GUEST:
        return None
    if role == ActorRole.CUSTOMER:
        return Actor(role=role, customer_id=subject_id)
    return Actor(role=role, user_id=subject_id)


async def get_current_actor(request: Request) -> Actor:
    """Resolve the caller from a bearer token or cookie, else a guest.

    An invalid or expired token is treated as no token: the caller continues
    as a guest.
    """
    token = _token_from_request(request)
    actor = actor_from_payload(decode_access_token(token)) if token else None
    return actor or Actor.guest()


CurrentActor = Annotated[Actor, Depends(get_current_actor)]


def require_roles(*roles: ActorRole):
    """Dependency to require one of the given roles."""

    async def role_checker(actor: CurrentActor) -> Actor:
        if actor.role == ActorRole.GUEST:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access forbidden: {actor.role.value} is not allowed",
            )
        return actor

    return role_checker


RequireAdmin = Annotated[Actor, Depends(require_roles(ActorRole.ADMIN))]
RequireStaff = Annotated[Actor, Depends(require_roles(*STAFF_ROLES))]
