"""
Household membership check.

Authentication lives outside this package; the pipeline only asks
whether a user belongs to a household.
"""

import logging
import sqlite3
from typing import Optional

from ..errors import AccessDeniedError
from ..state_store import StateStore

logger = logging.getLogger(__name__)


class HouseholdAccess:
    """Membership verification backed by the state store's household_members table."""

    def __init__(self, store: StateStore):
        self.store = store

    def verify(
        self,
        household_id: str,
        user_id: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """
        Raises:
            AccessDeniedError: If user_id is not a member of household_id
        """
        if not self.store.is_household_member(household_id, user_id, conn=conn):
            logger.warning(
                "security_event=access_denied household_id=%s user_id=%s", household_id, user_id
            )
            raise AccessDeniedError(
                f"Access denied: user {user_id} is not a member of household {household_id}"
            )
