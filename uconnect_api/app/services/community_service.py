"""
Business logic for communities and their member sets.

Membership is what grants the right to publish and comment in a
community, so joining and leaving are the only ways the
``MembershipOracle`` answers can change.
"""

import logging
import sqlite3

from ..core.db import get_connection
from ..core.errors import Conflict, InvalidInput, NotFound
from ..schemas.community import CommunityCreate, CommunityRead
from .references import require_reference


logger = logging.getLogger(__name__)


class CommunityService:
    """Service for communities."""

    @classmethod
    async def create_community(cls, data: CommunityCreate) -> CommunityRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO communities (name, description) VALUES (?, ?)",
                (data.name, data.description),
            )
            conn.commit()
            community_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise Conflict(f"Community '{data.name}' already exists") from exc
        finally:
            conn.close()
        logger.info("Community %s created (%s)", community_id, data.name)
        return CommunityRead(id=community_id, name=data.name, description=data.description, member_count=0)

    @classmethod
    async def get_community(cls, community_id: str) -> CommunityRead:
        cid = require_reference(community_id, "Invalid community id")
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT c.id, c.name, c.description,
                       (SELECT COUNT(*) FROM community_members m WHERE m.community_id = c.id) AS member_count
                FROM communities c WHERE c.id = ?
                """,
                (cid,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Community not found")
        return CommunityRead(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            member_count=row["member_count"],
        )

    @classmethod
    async def join(cls, community_id: str, account_id: int) -> None:
        cid = require_reference(community_id, "Invalid community id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM communities WHERE id = ?", (cid,)).fetchone():
                raise NotFound("Community not found")
            cursor.execute(
                "INSERT OR IGNORE INTO community_members (community_id, account_id) VALUES (?, ?)",
                (cid, account_id),
            )
            if cursor.rowcount == 0:
                raise Conflict("You are already a member of this community")
            conn.commit()
        finally:
            conn.close()
        logger.info("Account %s joined community %s", account_id, cid)

    @classmethod
    async def leave(cls, community_id: str, account_id: int) -> None:
        cid = require_reference(community_id, "Invalid community id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM community_members WHERE community_id = ? AND account_id = ?",
                (cid, account_id),
            )
            if cursor.rowcount == 0:
                raise InvalidInput("You are not a member of this community")
            conn.commit()
        finally:
            conn.close()
        logger.info("Account %s left community %s", account_id, cid)
