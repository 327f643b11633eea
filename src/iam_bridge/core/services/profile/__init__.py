"""IAM profile synchronisation."""

from .email_reconciler import EmailReconciler
from .freshness import is_stale
from .profile import Profile, idp_from_uid
from .profile_store import HttpProfileStore, InMemoryProfileStore, ProfileStore

__all__ = [
    "EmailReconciler",
    "HttpProfileStore",
    "InMemoryProfileStore",
    "Profile",
    "ProfileStore",
    "idp_from_uid",
    "is_stale",
]
