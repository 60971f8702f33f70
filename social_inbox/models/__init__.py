"""
SQLAlchemy Models Package
"""

from social_inbox.models.permission import SocialInboxPermission

__all__ = [
    "SocialInboxPermission",
]
