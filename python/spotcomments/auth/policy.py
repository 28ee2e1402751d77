"""Authorization policy for comment operations.

A pure decision function: given the operation, the (optional) validated
caller, and the resource owner, return a decision. No database access and
no HTTP exceptions in decide(); enforce() maps denials onto ApiErrors.

Rules:
- list / stats / bulk_counts: public read, always allowed
- create: requires a validated session
- delete: requires a validated session AND owner_user_id == caller.user_id
  (a comment with a NULL owner can never be deleted through this policy)

Ownership on list is an annotation (is_owner), never a gate.
"""

from enum import Enum
from uuid import UUID

from spotcomments.auth.middleware import Viewer
from spotcomments.errors import ForbiddenError, UnauthorizedError


class Operation(str, Enum):
    LIST = "list"
    STATS = "stats"
    BULK_COUNTS = "bulk_counts"
    CREATE = "create"
    DELETE = "delete"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY_UNAUTHENTICATED = "deny_unauthenticated"
    DENY_FORBIDDEN = "deny_forbidden"


PUBLIC_OPERATIONS = frozenset({Operation.LIST, Operation.STATS, Operation.BULK_COUNTS})


def decide(
    operation: Operation,
    caller: Viewer | None,
    owner_user_id: UUID | None = None,
) -> Decision:
    """Decide whether caller may perform operation on a resource."""
    if operation in PUBLIC_OPERATIONS:
        return Decision.ALLOW

    if caller is None:
        return Decision.DENY_UNAUTHENTICATED

    if operation is Operation.CREATE:
        return Decision.ALLOW

    if operation is Operation.DELETE:
        if owner_user_id is not None and owner_user_id == caller.user_id:
            return Decision.ALLOW
        return Decision.DENY_FORBIDDEN

    return Decision.DENY_FORBIDDEN


def enforce(
    operation: Operation,
    caller: Viewer | None,
    owner_user_id: UUID | None = None,
) -> None:
    """Raise the mapped ApiError unless decide() allows the operation.

    Raises:
        UnauthorizedError: No validated session.
        ForbiddenError: Authenticated but not permitted.
    """
    decision = decide(operation, caller, owner_user_id)
    if decision is Decision.DENY_UNAUTHENTICATED:
        raise UnauthorizedError()
    if decision is Decision.DENY_FORBIDDEN:
        raise ForbiddenError()


def is_owner(caller: Viewer | None, owner_user_id: UUID | None) -> bool:
    """Ownership annotation for read results. False for anonymous callers."""
    return caller is not None and owner_user_id is not None and owner_user_id == caller.user_id
