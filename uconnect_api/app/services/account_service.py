"""
Business logic for account sessions and lifecycle.

Login only admits confirmed, active accounts.  Accounts are never
deleted here: deactivation flips the ``active`` flag, which also
invalidates every outstanding token (see ``core.security.verify_token``),
and an administrator can reactivate them later.
"""

import json
import logging
import sqlite3
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from ..core.db import get_connection
from ..core.errors import Forbidden, InvalidCredential, InvalidInput, NotFound
from ..core.security import Identity, hash_password, issue_token, verify_password
from ..infra.assets import AssetStore, AssetStoreError
from ..schemas.account import AccountProfile, AccountPublic, LoginRequest, LoginResponse, PasswordUpdate
from .friend_service import FriendService
from .references import is_blank, require_reference


logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = (
    "id, name, username, email, role, avatar_url, university, career, phone, bio, interests"
)


class AccountService:
    """Service for login, profile and activation state."""

    @classmethod
    async def login(cls, data: LoginRequest) -> LoginResponse:
        if is_blank(data.email) or is_blank(data.password):
            raise InvalidInput("You must fill in email and password")
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, role, password, confirmed, active FROM accounts WHERE email = ?",
                (data.email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("The user is not registered")
        if not row["confirmed"]:
            raise Forbidden("Your account has not been confirmed. Check your email to confirm your registration.")
        if not row["active"]:
            raise Forbidden("Your account has been deactivated. Contact an administrator to reactivate it.")
        if not await run_in_threadpool(verify_password, data.password, row["password"]):
            raise InvalidCredential("Incorrect password")
        logger.info("Account %s logged in", row["id"])
        profile = await cls.get_profile(row["id"])
        return LoginResponse(token=issue_token(row["id"], row["role"]), account=profile)

    @classmethod
    async def get_profile(cls, account_id: int) -> AccountProfile:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM accounts WHERE id = ?",
                (account_id,),
            ).fetchone()
            if not row:
                raise NotFound("Account not found")
            communities = cursor.execute(
                "SELECT community_id FROM community_members WHERE account_id = ? ORDER BY community_id",
                (account_id,),
            ).fetchall()
        finally:
            conn.close()
        friends = await FriendService.list_friends(account_id)
        return AccountProfile(
            id=row["id"],
            name=row["name"],
            username=row["username"],
            email=row["email"],
            role=row["role"],
            avatar_url=row["avatar_url"],
            university=row["university"],
            career=row["career"],
            phone=row["phone"],
            bio=row["bio"],
            interests=json.loads(row["interests"]) if row["interests"] else [],
            friends=friends,
            communities=[c["community_id"] for c in communities],
        )

    @classmethod
    async def find_by_email(cls, email: str) -> Optional[AccountProfile]:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id FROM accounts WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            return None
        return await cls.get_profile(row["id"])

    @classmethod
    async def get_account(cls, account_id: str) -> AccountPublic:
        """Public view of an active account; the password never leaves the store."""
        target = require_reference(account_id, "Invalid account id")
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT id, name, username, avatar_url, university, career, bio, interests
                FROM accounts WHERE id = ? AND active = 1
                """,
                (target,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Student not found")
        return AccountPublic(
            id=row["id"],
            name=row["name"],
            username=row["username"],
            avatar_url=row["avatar_url"],
            university=row["university"],
            career=row["career"],
            bio=row["bio"],
            interests=json.loads(row["interests"]) if row["interests"] else [],
        )

    @classmethod
    async def update_password(cls, identity: Identity, data: PasswordUpdate) -> None:
        """Replace the caller's password after checking the current one."""
        if is_blank(data.current_password) or is_blank(data.new_password):
            raise InvalidInput("You must fill in the current and the new password")
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT password FROM accounts WHERE id = ?",
                (identity.account_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("Account not found")
        if not await run_in_threadpool(verify_password, data.current_password, row["password"]):
            raise InvalidCredential("The current password is not correct")
        hashed = await run_in_threadpool(hash_password, data.new_password)
        conn = get_connection()
        try:
            conn.execute(
                "UPDATE accounts SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (hashed, identity.account_id),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Account %s changed its password", identity.account_id)

    @classmethod
    async def deactivate(cls, identity: Identity, account_id: str, asset_store: AssetStore) -> None:
        """Deactivate an account; allowed for its owner and administrators.

        The profile picture is dropped from the asset store; a failure
        there is logged and does not undo the deactivation.
        """
        target = require_reference(account_id, "Invalid account id")
        if target != identity.account_id and not identity.is_admin:
            raise Forbidden("You are not allowed to deactivate this account")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id, avatar_asset_id FROM accounts WHERE id = ?",
                (target,),
            ).fetchone()
            if not row:
                raise NotFound("Account not found")
            cursor.execute(
                """
                UPDATE accounts
                SET active = 0, avatar_url = NULL, avatar_asset_id = NULL, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (target,),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Account %s deactivated by %s", target, identity.account_id)
        if row["avatar_asset_id"]:
            try:
                await asset_store.delete(row["avatar_asset_id"])
            except AssetStoreError as exc:
                logger.warning("Could not delete avatar of account %s: %s", target, exc)

    @classmethod
    async def reactivate(cls, account_id: str) -> None:
        target = require_reference(account_id, "Invalid account id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE accounts SET active = 1, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (target,),
            )
            if cursor.rowcount == 0:
                raise NotFound("Account not found")
            conn.commit()
        finally:
            conn.close()
        logger.info("Account %s reactivated", target)
