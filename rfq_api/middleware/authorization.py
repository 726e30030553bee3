from enum import Enum
from typing import Any, Optional

from fastapi import Depends
import structlog

from rfq_api.errors import ForbiddenError
from rfq_api.middleware.auth import get_current_user

logger = structlog.get_logger()


class Operation(str, Enum):
    CREATE_RFQ = "create_rfq"
    UPDATE_RFQ = "update_rfq"
    DELETE_RFQ = "delete_rfq"
    DISTRIBUTE_RFQ = "distribute_rfq"
    LIST_ALL_RFQS = "list_all_rfqs"
    VIEW_RFQ = "view_rfq"
    LIST_OWN_RFQS = "list_own_rfqs"
    LIST_VISIBLE_RFQS = "list_visible_rfqs"
    SUBMIT_QUOTE = "submit_quote"


class Access(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    OWNER = "owner"  # buyer must own the RFQ
    ELIGIBLE = "eligible"  # seller must pass the eligibility check


CAPABILITIES: dict[Operation, dict[str, Access]] = {
    Operation.CREATE_RFQ: {"admin": Access.ALLOW, "buyer": Access.ALLOW, "seller": Access.DENY},
    Operation.UPDATE_RFQ: {"admin": Access.ALLOW, "buyer": Access.OWNER, "seller": Access.DENY},
    Operation.DELETE_RFQ: {"admin": Access.ALLOW, "buyer": Access.OWNER, "seller": Access.DENY},
    Operation.DISTRIBUTE_RFQ: {"admin": Access.ALLOW, "buyer": Access.DENY, "seller": Access.DENY},
    Operation.LIST_ALL_RFQS: {"admin": Access.ALLOW, "buyer": Access.DENY, "seller": Access.DENY},
    Operation.VIEW_RFQ: {"admin": Access.ALLOW, "buyer": Access.DENY, "seller": Access.DENY},
    # Role-specific feeds; admins list everything through LIST_ALL_RFQS.
    Operation.LIST_OWN_RFQS: {"admin": Access.DENY, "buyer": Access.OWNER, "seller": Access.DENY},
    Operation.LIST_VISIBLE_RFQS: {"admin": Access.DENY, "buyer": Access.DENY, "seller": Access.ELIGIBLE},
    Operation.SUBMIT_QUOTE: {"admin": Access.DENY, "buyer": Access.DENY, "seller": Access.ELIGIBLE},
}


def access_for(role: str, operation: Operation) -> Access:
    return CAPABILITIES.get(operation, {}).get(role, Access.DENY)


# Marks an OWNER/ELIGIBLE condition the caller has not evaluated yet.
UNCHECKED: Any = object()


def authorize(
    current_user: dict,
    operation: Operation,
    owner_id: Optional[str] = UNCHECKED,
    eligible: Optional[bool] = UNCHECKED,
) -> None:
    """
    Raise ForbiddenError unless the capability matrix lets the user perform
    the operation.

    Routes call this with the role only, before the RFQ is loaded; services
    call it again with owner_id (the RFQ's buyer_id, possibly None) or
    eligible once they know it. An RFQ without a buyer has no buyer owner.
    """
    role = current_user.get("role")
    user_id = current_user.get("user_id")
    access = access_for(role, operation)

    if access is Access.ALLOW:
        return
    if access is Access.OWNER and (
        owner_id is UNCHECKED
        or (owner_id is not None and str(owner_id) == str(user_id))
    ):
        return
    if access is Access.ELIGIBLE and (eligible is UNCHECKED or eligible):
        return

    logger.info(
        "authorization_denied",
        role=role,
        user_id=user_id,
        operation=operation.value,
        access=access.value,
    )
    action = operation.value.replace("_", " ")
    if access is Access.OWNER:
        raise ForbiddenError(f"Unauthorized to {action}: not the owner")
    if access is Access.ELIGIBLE:
        raise ForbiddenError("You are not authorized to respond to this RFQ")
    raise ForbiddenError(
        f"Role '{role}' cannot {action}", code="INSUFFICIENT_PERMISSIONS"
    )


def require_capability(operation: Operation):
    """
    FastAPI dependency factory: reject roles whose matrix entry is DENY.

    Usage:
        @router.post("/{rfq_id}/distribute")
        async def distribute_rfq(
            current_user: dict = Depends(require_capability(Operation.DISTRIBUTE_RFQ)),
        ):
    """
    async def check_capability(current_user: dict = Depends(get_current_user)) -> dict:
        authorize(current_user, operation)
        return current_user

    return check_capability
