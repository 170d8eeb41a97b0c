"""
Business logic for publications.

A publication belongs to one community and can only be created by a
member of that community.  It carries text, an image, or both.  Images
live in the external asset store; the database keeps the URL and the
asset id so the image can be removed when the publication is deleted.

Every successful mutation is announced on the community's realtime
channel.
"""

import logging
import sqlite3
from typing import List, Optional

from ..core.db import get_connection
from ..core.errors import Forbidden, InvalidInput, NotFound, UpstreamFailure
from ..core.security import Identity
from ..infra.assets import (
    PUBLICATIONS_FOLDER,
    AssetStore,
    AssetStoreError,
    MediaFile,
    validate_media,
)
from ..infra.realtime import EventKind, EventPublisher, broadcast
from ..schemas.publication import PublicationRead
from .membership_service import MembershipOracle
from .references import author_from_row, is_blank, require_reference, utc_now


logger = logging.getLogger(__name__)

_SELECT = """
    SELECT p.id, p.community_id, p.text, p.media_url, p.created_at,
           p.author_id, a.username AS author_username, a.avatar_url AS author_avatar_url
    FROM publications p
    JOIN accounts a ON a.id = p.author_id
"""


def _to_read(row: sqlite3.Row) -> PublicationRead:
    return PublicationRead(
        id=row["id"],
        community_id=row["community_id"],
        author=author_from_row(row),
        text=row["text"],
        media_url=row["media_url"],
        created_at=row["created_at"],
    )


class PublicationService:
    """Service for community publications."""

    @classmethod
    async def create_publication(
        cls,
        identity: Identity,
        community_id: Optional[str],
        text: Optional[str],
        media: Optional[MediaFile],
        asset_store: AssetStore,
        publisher: EventPublisher,
    ) -> PublicationRead:
        """Create a publication in a community the caller belongs to.

        The image, if any, is uploaded before anything is written; an
        upload failure aborts with ``UpstreamFailure`` and leaves no
        record behind.
        """
        if is_blank(community_id):
            raise InvalidInput("The publication must be associated with a community")
        cid = require_reference(community_id, "Invalid community id")
        if not await MembershipOracle.is_member(cid, identity.account_id):
            raise Forbidden("You cannot publish in this community")
        text = None if is_blank(text) else text.strip()
        if text is None and media is None:
            raise InvalidInput("The publication must contain at least text or an image")
        if media is not None:
            validate_media(media)

        asset = None
        if media is not None:
            try:
                asset = await asset_store.upload(media, PUBLICATIONS_FOLDER)
            except AssetStoreError as exc:
                logger.error("Image upload for publication in community %s failed: %s", cid, exc)
                raise UpstreamFailure("Could not upload the image") from exc

        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO publications (author_id, community_id, text, media_url, media_asset_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    identity.account_id,
                    cid,
                    text,
                    asset.url if asset else None,
                    asset.asset_id if asset else None,
                    utc_now(),
                ),
            )
            publication_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(_SELECT + " WHERE p.id = ?", (publication_id,)).fetchone()
        except sqlite3.Error:
            conn.rollback()
            if asset is not None:
                await cls._discard_asset(asset_store, asset.asset_id)
            raise
        finally:
            conn.close()

        publication = _to_read(row)
        logger.info(
            "Account %s created publication %s in community %s",
            identity.account_id,
            publication.id,
            cid,
        )
        broadcast(publisher, cid, EventKind.NEW_PUBLICATION, publication.model_dump(mode="json"))
        return publication

    @classmethod
    async def list_publications(cls, identity: Identity, community_id: str) -> List[PublicationRead]:
        """Publications of a community, newest first."""
        cid = require_reference(community_id, "Invalid community id")
        if not await MembershipOracle.is_member(cid, identity.account_id):
            raise Forbidden("You are not a member of this community")
        conn = get_connection()
        try:
            rows = conn.execute(
                _SELECT + " WHERE p.community_id = ? ORDER BY p.created_at DESC, p.id DESC",
                (cid,),
            ).fetchall()
            return [_to_read(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def delete_publication(
        cls,
        identity: Identity,
        publication_id: str,
        asset_store: AssetStore,
        publisher: EventPublisher,
    ) -> None:
        """Delete a publication owned by the caller, with its comments and image.

        The database is the source of truth: once the rows are gone the
        deletion has happened, even if the asset store fails to drop
        the image.
        """
        pid = require_reference(publication_id, "Invalid publication id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id, author_id, community_id, media_asset_id FROM publications WHERE id = ?",
                (pid,),
            ).fetchone()
            if not row:
                raise NotFound("Publication not found")
            if row["author_id"] != identity.account_id:
                raise Forbidden("You are not allowed to delete this publication")
            cursor.execute("DELETE FROM comments WHERE publication_id = ?", (pid,))
            cursor.execute("DELETE FROM publications WHERE id = ?", (pid,))
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info("Account %s deleted publication %s", identity.account_id, pid)
        if row["media_asset_id"]:
            await cls._discard_asset(asset_store, row["media_asset_id"])
        broadcast(
            publisher,
            row["community_id"],
            EventKind.DELETE_PUBLICATION,
            {"publicationId": pid, "communityId": row["community_id"]},
        )

    @staticmethod
    async def _discard_asset(asset_store: AssetStore, asset_id: str) -> None:
        try:
            await asset_store.delete(asset_id)
        except AssetStoreError as exc:
            logger.warning("Could not delete asset %s: %s", asset_id, exc)
