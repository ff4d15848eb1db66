"""
Model package initialization
"""

from .user import User, UserRole, AppRole
from .organization import Org, OrgMember, MemberRole
from .plan import Plan, DEFAULT_PLAN_TITLE
from .plan_records import (
    PersonalProfile,
    ContactToNotify,
    Pet,
    InsurancePolicy,
    Property,
    Message,
    Investment,
    Debt,
    BankAccount,
    Business,
    FuneralFunding,
    ProfessionalContact,
    PLAN_COLLECTIONS,
)
from .billing import Subscription, Purchase, SubscriptionStatus, PurchaseStatus
from .support import Appointment, KBArticle, FAQ

__all__ = [
    # Identity
    "User",
    "UserRole",
    "Org",
    "OrgMember",

    # Plan
    "Plan",
    "PersonalProfile",
    "ContactToNotify",
    "Pet",
    "InsurancePolicy",
    "Property",
    "Message",
    "Investment",
    "Debt",
    "BankAccount",
    "Business",
    "FuneralFunding",
    "ProfessionalContact",
    "PLAN_COLLECTIONS",
    "DEFAULT_PLAN_TITLE",

    # Billing
    "Subscription",
    "Purchase",

    # Support
    "Appointment",
    "KBArticle",
    "FAQ",

    # Enums
    "AppRole",
    "MemberRole",
    "SubscriptionStatus",
    "PurchaseStatus",
]
