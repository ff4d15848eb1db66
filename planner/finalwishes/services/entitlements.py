"""
Entitlement Service
Decides what a user may access from admin grants, subscription and purchases
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finalwishes.config.product_roles import (
    DIGITAL_PLANNER_ROLES,
    FULL_PLATFORM_ROLES,
    PREMIUM_TOOLS_ROLES,
    PRODUCT_ROLE_MAP,
    SONG_ROLES,
    Roles,
    get_roles_for_lookup_key,
)
from finalwishes.models.billing import Purchase, PurchaseStatus, Subscription, SubscriptionStatus
from finalwishes.models.user import AppRole, UserRole

logger = logging.getLogger(__name__)


class AccessKind(str, enum.Enum):
    ADMIN = "admin"
    ACTIVE_SUBSCRIPTION = "active_subscription"
    PURCHASED = "purchased"
    NO_ACCESS = "no_access"


@dataclass(frozen=True)
class Entitlement:
    kind: AccessKind
    roles: FrozenSet[str] = field(default_factory=frozenset)
    subscription_status: Optional[str] = None

    @classmethod
    def no_access(cls) -> "Entitlement":
        return cls(kind=AccessKind.NO_ACCESS)

    @property
    def is_admin(self) -> bool:
        return self.kind is AccessKind.ADMIN

    @property
    def is_master_account(self) -> bool:
        return self.is_admin

    @property
    def has_active_subscription(self) -> bool:
        return self.is_admin or self.kind is AccessKind.ACTIVE_SUBSCRIPTION

    @property
    def has_access(self) -> bool:
        return self.is_admin or bool(self.roles)

    def has_role(self, role: str) -> bool:
        return self.is_admin or role in self.roles

    @property
    def has_printable_access(self) -> bool:
        return self.has_role(Roles.PRINTABLE)

    @property
    def is_printable_only(self) -> bool:
        """Printables purchased without any role that opens the digital planner"""
        if self.is_admin:
            return False
        return Roles.PRINTABLE in self.roles and not (self.roles & DIGITAL_PLANNER_ROLES)

    @property
    def has_digital_planner_access(self) -> bool:
        return self.is_admin or bool(self.roles & DIGITAL_PLANNER_ROLES)

    @property
    def has_premium_tools_access(self) -> bool:
        return self.is_admin or bool(self.roles & PREMIUM_TOOLS_ROLES)

    @property
    def has_full_platform_access(self) -> bool:
        return self.is_admin or bool(self.roles & FULL_PLATFORM_ROLES)

    @property
    def has_song_request_access(self) -> bool:
        return self.is_admin or bool(self.roles & SONG_ROLES)

    @property
    def has_do_it_for_you_access(self) -> bool:
        return self.has_role(Roles.DONE_FOR_YOU)

    def access_flags(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "roles": sorted(self.roles),
            "isAdmin": self.is_admin,
            "isMasterAccount": self.is_master_account,
            "hasAccess": self.has_access,
            "hasActiveSubscription": self.has_active_subscription,
            "hasPrintableAccess": self.has_printable_access,
            "isPrintableOnly": self.is_printable_only,
            "hasDigitalPlannerAccess": self.has_digital_planner_access,
            "hasPremiumToolsAccess": self.has_premium_tools_access,
            "hasFullPlatformAccess": self.has_full_platform_access,
            "hasSongRequestAccess": self.has_song_request_access,
            "hasDoItForYouAccess": self.has_do_it_for_you_access,
        }


def resolve_entitlement(
    is_admin: bool,
    subscription_status: Optional[str],
    subscription_key: Optional[str],
    purchase_keys: Iterable[str] = (),
    role_map: Mapping[str, Tuple[str, ...]] = PRODUCT_ROLE_MAP,
) -> Entitlement:
    """
    Pure entitlement decision.

    Admin wins outright. Subscription roles count only while the
    subscription status is exactly "active"; one-time purchases add their
    roles regardless of subscription state.
    """
    if is_admin:
        return Entitlement(kind=AccessKind.ADMIN, subscription_status=subscription_status)

    subscription_active = subscription_status == SubscriptionStatus.ACTIVE.value

    roles = set()
    if subscription_active:
        roles.update(get_roles_for_lookup_key(subscription_key, role_map))
    for key in purchase_keys:
        roles.update(get_roles_for_lookup_key(key, role_map))

    if subscription_active:
        kind = AccessKind.ACTIVE_SUBSCRIPTION
    elif roles:
        kind = AccessKind.PURCHASED
    else:
        kind = AccessKind.NO_ACCESS

    return Entitlement(kind=kind, roles=frozenset(roles), subscription_status=subscription_status)


async def has_app_role(db: AsyncSession, user_id: uuid.UUID, role: str) -> bool:
    """Privileged role check against explicit grants"""
    result = await db.execute(
        select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role).limit(1)
    )
    return result.scalar_one_or_none() is not None


class EntitlementResolver:
    """Reads grants, subscription and purchases and applies `resolve_entitlement`"""

    def __init__(self, role_map: Mapping[str, Tuple[str, ...]] = PRODUCT_ROLE_MAP):
        self.role_map = role_map

    async def is_admin(self, db: AsyncSession, user_id: Optional[uuid.UUID]) -> bool:
        if not user_id:
            return False
        try:
            return await has_app_role(db, user_id, AppRole.ADMIN.value)
        except Exception as e:
            logger.error(f"Admin check failed for user {user_id}: {e}", exc_info=True)
            return False

    async def resolve(self, db: AsyncSession, user_id: Optional[uuid.UUID]) -> Entitlement:
        """Entitlement for a user; any failure resolves to no access"""
        if not user_id:
            return Entitlement.no_access()

        try:
            if await has_app_role(db, user_id, AppRole.ADMIN.value):
                return resolve_entitlement(True, None, None, role_map=self.role_map)

            result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
            subscription = result.scalar_one_or_none()

            result = await db.execute(
                select(Purchase.product_lookup_key).where(
                    Purchase.user_id == user_id,
                    Purchase.status == PurchaseStatus.COMPLETED.value,
                )
            )
            purchase_keys = result.scalars().all()

            return resolve_entitlement(
                False,
                subscription.status if subscription else None,
                subscription.lookup_key if subscription else None,
                purchase_keys,
                role_map=self.role_map,
            )
        except Exception as e:
            logger.warning(f"Entitlement lookup failed for user {user_id}, denying access: {e}")
            return Entitlement.no_access()


entitlement_resolver = EntitlementResolver()
