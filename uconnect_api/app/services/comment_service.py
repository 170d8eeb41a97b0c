"""
Business logic for comments.

Comments hang off a publication and repeat its community so that the
realtime channel and the membership check can be resolved without
loading the publication again.  Creation validates in a fixed order
and stops at the first failure:

1. every required field is present;
2. the ids are well formed;
3. the publication exists;
4. the publication lives in the given community;
5. the caller is a member of that community.

Only the author may edit or delete a comment.
"""

import logging
import sqlite3
from typing import List

from ..core.db import get_connection
from ..core.errors import Forbidden, InvalidInput, NotFound
from ..core.security import Identity
from ..infra.realtime import EventKind, EventPublisher, broadcast
from ..schemas.comment import CommentCreate, CommentRead, CommentUpdate
from .membership_service import MembershipOracle
from .references import author_from_row, is_blank, parse_reference, require_reference, utc_now


logger = logging.getLogger(__name__)

_SELECT = """
    SELECT c.id, c.publication_id, c.community_id, c.text, c.created_at, c.updated_at,
           c.author_id, a.username AS author_username, a.avatar_url AS author_avatar_url
    FROM comments c
    JOIN accounts a ON a.id = c.author_id
"""


def _to_read(row: sqlite3.Row) -> CommentRead:
    return CommentRead(
        id=row["id"],
        publication_id=row["publication_id"],
        community_id=row["community_id"],
        author=author_from_row(row),
        text=row["text"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class CommentService:
    """Service for comments on publications."""

    @classmethod
    async def create_comment(
        cls,
        identity: Identity,
        data: CommentCreate,
        publisher: EventPublisher,
    ) -> CommentRead:
        if is_blank(data.publication_id) or is_blank(data.community_id) or is_blank(data.text):
            raise InvalidInput("Missing required fields: publication_id, community_id and text")
        publication_id = parse_reference(data.publication_id)
        community_id = parse_reference(data.community_id)
        if publication_id is None or community_id is None:
            raise InvalidInput("Invalid ids")

        conn = get_connection()
        try:
            publication = conn.execute(
                "SELECT id, community_id FROM publications WHERE id = ?",
                (publication_id,),
            ).fetchone()
        finally:
            conn.close()
        if not publication:
            raise NotFound("The publication does not exist")
        if publication["community_id"] != community_id:
            raise InvalidInput("The comment must belong to the same community as the publication")
        if not await MembershipOracle.is_member(community_id, identity.account_id):
            raise Forbidden("The user does not belong to this community")

        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO comments (publication_id, community_id, author_id, text, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (publication_id, community_id, identity.account_id, data.text.strip(), utc_now()),
            )
            comment_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(_SELECT + " WHERE c.id = ?", (comment_id,)).fetchone()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        comment = _to_read(row)
        logger.info(
            "Account %s commented %s on publication %s",
            identity.account_id,
            comment.id,
            publication_id,
        )
        broadcast(publisher, community_id, EventKind.NEW_COMMENT, comment.model_dump(mode="json"))
        return comment

    @classmethod
    async def update_comment(
        cls,
        identity: Identity,
        comment_id: str,
        data: CommentUpdate,
        publisher: EventPublisher,
    ) -> CommentRead:
        """Replace the text of a comment written by the caller."""
        cid = require_reference(comment_id, "Invalid comment id")
        if is_blank(data.text):
            raise InvalidInput("The comment text is required")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id, author_id FROM comments WHERE id = ?",
                (cid,),
            ).fetchone()
            if not row:
                raise NotFound("Comment not found")
            if row["author_id"] != identity.account_id:
                raise Forbidden("You are not allowed to edit this comment")
            cursor.execute(
                "UPDATE comments SET text = ?, updated_at = ? WHERE id = ?",
                (data.text.strip(), utc_now(), cid),
            )
            conn.commit()
            updated = cursor.execute(_SELECT + " WHERE c.id = ?", (cid,)).fetchone()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        comment = _to_read(updated)
        logger.info("Account %s edited comment %s", identity.account_id, cid)
        broadcast(publisher, comment.community_id, EventKind.UPDATE_COMMENT, comment.model_dump(mode="json"))
        return comment

    @classmethod
    async def delete_comment(cls, identity: Identity, comment_id: str, publisher: EventPublisher) -> None:
        cid = require_reference(comment_id, "Invalid comment id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id, author_id, publication_id, community_id FROM comments WHERE id = ?",
                (cid,),
            ).fetchone()
            if not row:
                raise NotFound("Comment not found")
            if row["author_id"] != identity.account_id:
                raise Forbidden("You are not allowed to delete this comment")
            cursor.execute("DELETE FROM comments WHERE id = ?", (cid,))
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info("Account %s deleted comment %s", identity.account_id, cid)
        broadcast(
            publisher,
            row["community_id"],
            EventKind.DELETE_COMMENT,
            {
                "commentId": cid,
                "publicationId": row["publication_id"],
                "communityId": row["community_id"],
            },
        )

    @classmethod
    async def list_comments(cls, identity: Identity, publication_id: str) -> List[CommentRead]:
        """Comments of a publication in conversation order (oldest first)."""
        pid = require_reference(publication_id, "Invalid publication id")
        conn = get_connection()
        try:
            publication = conn.execute(
                "SELECT community_id FROM publications WHERE id = ?",
                (pid,),
            ).fetchone()
        finally:
            conn.close()
        if not publication:
            raise NotFound("The publication does not exist")
        if not await MembershipOracle.is_member(publication["community_id"], identity.account_id):
            raise Forbidden("You are not a member of this community")

        conn = get_connection()
        try:
            rows = conn.execute(
                _SELECT + " WHERE c.publication_id = ? ORDER BY c.created_at ASC, c.id ASC",
                (pid,),
            ).fetchall()
            return [_to_read(row) for row in rows]
        finally:
            conn.close()
