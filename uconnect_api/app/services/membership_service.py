"""
Membership oracle.

Answers the two authorization questions of the API: whether an account
belongs to a community and whether two accounts are mutual friends.
Both read straight from the database on every call; nothing is cached
so concurrent membership edits are never judged on stale data.
"""

from ..core.db import get_connection


class MembershipOracle:
    """Read-only authorization checks."""

    @classmethod
    async def is_member(cls, community_id: int, account_id: int) -> bool:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM community_members WHERE community_id = ? AND account_id = ?",
                (community_id, account_id),
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    @classmethod
    async def are_mutual_friends(cls, a: int, b: int) -> bool:
        if a == b:
            return False
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT COUNT(*) AS edges FROM friendships
                WHERE (account_id = ? AND friend_id = ?) OR (account_id = ? AND friend_id = ?)
                """,
                (a, b, b, a),
            ).fetchone()
            return row["edges"] == 2
        finally:
            conn.close()
