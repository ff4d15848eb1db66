"""
API package initialization
"""

# Import all routers to make them available
from . import access, auth, billing, email, plans, sections, stripe_webhook, support

__all__ = ["access", "auth", "billing", "email", "plans", "sections", "stripe_webhook", "support"]
