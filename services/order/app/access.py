"""
Order Service - access policy

Who may act on an order differs per operation and is kept that way:

    operation            tenant   owner   elevated role
    ───────────────────  ──────   ─────   ─────────────
    get_order            must     or      ADMIN/SELLER/STAFF
    update_order_status  must     or      ADMIN/SELLER/STAFF
    cancel_order         must     or      ADMIN/SELLER/STAFF (can_access_order)
    request_return       must     only    -
    list_order_history   must     only    -
    find_order_by_payment_id      scoped to (payment, user, tenant)

ROUTE_ROLES is the coarse role gate applied by the HTTP layer before any of
the checks above run.
"""

import logging
from collections.abc import Iterable
from uuid import UUID

logger = logging.getLogger(__name__)

ELEVATED_ROLES = frozenset({"ADMIN", "SELLER", "STAFF"})

ROUTE_ROLES: dict[str, frozenset[str]] = {
    "create_order": frozenset({"CUSTOMER", "ADMIN", "SELLER"}),
    "get_order": frozenset({"CUSTOMER", "ADMIN", "SELLER", "STAFF"}),
    "list_order_history": frozenset({"CUSTOMER"}),
    "find_order_by_payment_id": frozenset({"CUSTOMER", "ADMIN", "SELLER", "STAFF"}),
    "update_order_status": frozenset({"ADMIN", "SELLER", "STAFF"}),
    "cancel_order": frozenset({"CUSTOMER", "ADMIN", "SELLER"}),
    "request_return": frozenset({"CUSTOMER"}),
}


def has_elevated_role(roles: Iterable[str] | None) -> bool:
    return roles is not None and not ELEVATED_ROLES.isdisjoint(roles)


def can_access_order(
    caller_id: UUID,
    owner_id: UUID,
    roles: Iterable[str] | None,
) -> bool:
    """Owners always pass; anyone else needs an elevated role."""
    if caller_id == owner_id:
        return True
    if has_elevated_role(roles):
        logger.debug("Elevated access granted: caller=%s owner=%s", caller_id, owner_id)
        return True
    logger.warning("Access denied: user %s attempted to access order of %s", caller_id, owner_id)
    return False
