"""Write permission checks for centers."""
from typing import Iterable, Optional


class Authorizer:
    """Admins may write anywhere; other users only to centers listing them."""

    def __init__(self, admin_users: Optional[Iterable[str]] = None):
        self.admin_users = set(admin_users or [])

    def is_admin(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and user_id in self.admin_users

    def can_write(self, user_id: Optional[str], allowed_users: Iterable[str]) -> bool:
        """
        Check whether user_id may modify a record owned by allowed_users.

        Args:
            user_id: Authenticated user, None for anonymous callers
            allowed_users: Users listed on the target center

        Returns:
            True if the write is permitted
        """
        if not user_id:
            return False
        return self.is_admin(user_id) or user_id in set(allowed_users or [])
