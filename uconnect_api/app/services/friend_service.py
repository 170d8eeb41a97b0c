"""
Business logic for the friend graph.

A friendship is stored as two directed rows in ``friendships``, one
owned by each account.  Both rows are written or removed in a single
transaction, so a failed request never leaves only one direction
behind.

Data written outside this service (imports, manual fixes) may still
contain half-edges: a row for A→B without B→A.  ``repair_friendships``
detects those and completes the missing direction; ``list_friends``
runs it before answering, so reads heal the graph as they go.
"""

import logging
import sqlite3
from typing import List

from ..core.db import get_connection
from ..core.errors import Conflict, InvalidInput, NotFound
from ..schemas.common import AuthorProjection
from .references import require_reference


logger = logging.getLogger(__name__)


class FriendService:
    """Service maintaining the symmetric friend relation."""

    @classmethod
    async def add_friend(cls, requester_id: int, target_id: str) -> None:
        target = require_reference(target_id, "Invalid account id")
        if target == requester_id:
            raise InvalidInput("You cannot add yourself as a friend")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._ensure_accounts_exist(cursor, requester_id, target)
            edges = cls._edges_between(cursor, requester_id, target)
            if len(edges) == 2:
                raise Conflict("This user is already your friend")
            if edges:
                logger.warning(
                    "Completing half-edge between accounts %s and %s",
                    requester_id,
                    target,
                )
            cursor.execute(
                "INSERT OR IGNORE INTO friendships (account_id, friend_id) VALUES (?, ?)",
                (requester_id, target),
            )
            cursor.execute(
                "INSERT OR IGNORE INTO friendships (account_id, friend_id) VALUES (?, ?)",
                (target, requester_id),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Accounts %s and %s are now friends", requester_id, target)

    @classmethod
    async def remove_friend(cls, requester_id: int, target_id: str) -> None:
        """Remove the relation in both directions.

        A half-edge counts as a relation here so it can always be
        removed by either side.
        """
        target = require_reference(target_id, "Invalid account id")
        if target == requester_id:
            raise InvalidInput("You cannot remove yourself as a friend")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._ensure_accounts_exist(cursor, requester_id, target)
            if not cls._edges_between(cursor, requester_id, target):
                raise InvalidInput("This user is not your friend")
            cursor.execute(
                """
                DELETE FROM friendships
                WHERE (account_id = ? AND friend_id = ?) OR (account_id = ? AND friend_id = ?)
                """,
                (requester_id, target, target, requester_id),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Accounts %s and %s are no longer friends", requester_id, target)

    @classmethod
    async def repair_friendships(cls, account_id: int) -> int:
        """Complete every half-edge touching ``account_id``.

        Returns the number of directions that were added.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            half_edges = cursor.execute(
                """
                SELECT f.account_id, f.friend_id
                FROM friendships f
                LEFT JOIN friendships r
                       ON r.account_id = f.friend_id AND r.friend_id = f.account_id
                WHERE r.account_id IS NULL AND (f.account_id = ? OR f.friend_id = ?)
                """,
                (account_id, account_id),
            ).fetchall()
            for edge in half_edges:
                logger.warning(
                    "Healing half-edge %s -> %s",
                    edge["account_id"],
                    edge["friend_id"],
                )
                cursor.execute(
                    "INSERT OR IGNORE INTO friendships (account_id, friend_id) VALUES (?, ?)",
                    (edge["friend_id"], edge["account_id"]),
                )
            conn.commit()
            return len(half_edges)
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def list_friends(cls, account_id: int) -> List[AuthorProjection]:
        await cls.repair_friendships(account_id)
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT a.id, a.username, a.avatar_url
                FROM friendships f
                JOIN friendships r ON r.account_id = f.friend_id AND r.friend_id = f.account_id
                JOIN accounts a ON a.id = f.friend_id
                WHERE f.account_id = ?
                ORDER BY a.username
                """,
                (account_id,),
            ).fetchall()
            return [
                AuthorProjection(id=row["id"], username=row["username"], avatar_url=row["avatar_url"])
                for row in rows
            ]
        finally:
            conn.close()

    @staticmethod
    def _ensure_accounts_exist(cursor: sqlite3.Cursor, a: int, b: int) -> None:
        row = cursor.execute(
            "SELECT COUNT(*) AS found FROM accounts WHERE id IN (?, ?)",
            (a, b),
        ).fetchone()
        if row["found"] != 2:
            raise NotFound("One or both accounts do not exist")

    @staticmethod
    def _edges_between(cursor: sqlite3.Cursor, a: int, b: int) -> list:
        return cursor.execute(
            """
            SELECT account_id, friend_id FROM friendships
            WHERE (account_id = ? AND friend_id = ?) OR (account_id = ? AND friend_id = ?)
            """,
            (a, b, b, a),
        ).fetchall()
