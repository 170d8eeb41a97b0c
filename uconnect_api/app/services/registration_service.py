"""
Account registration and e-mail confirmation.

Registration is a saga.  Its steps run in order and each one records a
``StepResult``:

``validate`` → ``unique`` → ``upload_avatar`` (optional) → ``persist`` →
``send_confirmation``

An account is persisted unconfirmed before the confirmation mail goes
out.  When the mailer reports a failed delivery the ``compensate`` step
deletes that account again (and its avatar), because nobody could ever
confirm it.  Failures before ``persist`` abort without writing
anything.  Confirmation happens later, outside the saga, by flipping
the account's ``confirmed`` flag (see ``RegistrationService.confirm``).
"""

import json
import logging
import secrets
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from ..core.config import settings
from ..core.db import get_connection
from ..core.errors import Conflict, InvalidInput, NotFound, UpstreamFailure
from ..core.security import ROLE_STUDENT, hash_password
from ..infra.assets import AVATARS_FOLDER, AssetStore, AssetStoreError, MediaFile, StoredAsset, validate_media
from ..infra.mail import Mailer, MailResult, confirmation_mail
from ..schemas.account import RegistrationRequest
from .references import is_blank


logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "username", "email", "password")


class RegistrationState(str, Enum):
    PENDING_VALIDATION = "pending-validation"
    PERSISTED_UNCONFIRMED = "persisted-unconfirmed"
    ROLLED_BACK = "rolled-back"


@dataclass
class StepResult:
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class RegistrationResult:
    """Outcome of one run of the registration saga."""

    email: str
    state: RegistrationState = RegistrationState.PENDING_VALIDATION
    account_id: Optional[int] = None
    steps: List[StepResult] = field(default_factory=list)

    def record(self, name: str, ok: bool, error: Optional[str] = None) -> StepResult:
        step = StepResult(name=name, ok=ok, error=error)
        self.steps.append(step)
        log = logger.info if ok else logger.error
        log("Registration of %s: step %s %s%s", self.email, name, "ok" if ok else "failed", f" ({error})" if error else "")
        return step


def generate_confirmation_token() -> str:
    return secrets.token_urlsafe(24)


class RegistrationService:
    """Service running the registration saga and the confirmation step."""

    @classmethod
    async def register(
        cls,
        data: RegistrationRequest,
        avatar: Optional[MediaFile],
        asset_store: AssetStore,
        mailer: Mailer,
    ) -> RegistrationResult:
        missing = [name for name in REQUIRED_FIELDS if is_blank(getattr(data, name))]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")
        email = data.email.strip().lower()
        username = data.username.strip()
        result = RegistrationResult(email=email)
        if not any(email.endswith(domain) for domain in settings.allowed_email_domains):
            result.record("validate", False, "email domain not allowed")
            raise InvalidInput("You must register with an institutional email address")
        if avatar is not None:
            validate_media(avatar)
        result.record("validate", True)

        cls._ensure_unique(email, username)
        result.record("unique", True)

        hashed = await run_in_threadpool(hash_password, data.password)
        token = generate_confirmation_token()

        avatar_asset: Optional[StoredAsset] = None
        if avatar is not None:
            try:
                avatar_asset = await asset_store.upload(avatar, AVATARS_FOLDER)
            except AssetStoreError as exc:
                result.record("upload_avatar", False, str(exc))
                raise UpstreamFailure("Could not upload the profile picture") from exc
            result.record("upload_avatar", True)

        try:
            result.account_id = cls._persist(data, email, username, hashed, token, avatar_asset)
        except sqlite3.IntegrityError as exc:
            # Lost a race against a concurrent registration with the same email or username.
            result.record("persist", False, str(exc))
            if avatar_asset is not None:
                await cls._discard_avatar(asset_store, avatar_asset)
            raise Conflict("The email or username is already registered") from exc
        result.state = RegistrationState.PERSISTED_UNCONFIRMED
        result.record("persist", True)

        subject, body = confirmation_mail(settings.frontend_url, token)
        delivery = await cls._deliver(mailer, email, subject, body)
        if not result.record("send_confirmation", delivery.ok, delivery.error).ok:
            await cls._compensate(result, asset_store, avatar_asset)
            raise UpstreamFailure("Could not send the confirmation email. Please try again.")
        return result

    @classmethod
    async def confirm(cls, token: str) -> None:
        """Confirm the account holding ``token`` and clear the token.

        Unknown or already used tokens raise ``NotFound`` without
        touching any record.
        """
        if is_blank(token):
            raise InvalidInput("Confirmation token not provided")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE accounts
                SET confirmed = 1, confirmation_token = NULL, updated_at = CURRENT_TIMESTAMP
                WHERE confirmation_token = ?
                """,
                (token,),
            )
            if cursor.rowcount == 0:
                raise NotFound("Invalid or expired token")
            conn.commit()
        finally:
            conn.close()
        logger.info("Account confirmed through its confirmation token")

    @staticmethod
    def _ensure_unique(email: str, username: str) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT 1 FROM accounts WHERE email = ?", (email,)).fetchone():
                raise Conflict("The email is already registered")
            if cursor.execute("SELECT 1 FROM accounts WHERE username = ?", (username,)).fetchone():
                raise Conflict("The username is already registered")
        finally:
            conn.close()

    @staticmethod
    def _persist(
        data: RegistrationRequest,
        email: str,
        username: str,
        hashed: str,
        token: str,
        avatar: Optional[StoredAsset],
    ) -> int:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO accounts (
                    name, username, email, password, role, confirmed, confirmation_token, active,
                    avatar_url, avatar_asset_id, university, career, phone, bio, interests
                ) VALUES (?, ?, ?, ?, ?, 0, ?, 1, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.name.strip(),
                    username,
                    email,
                    hashed,
                    ROLE_STUDENT,
                    token,
                    avatar.url if avatar else None,
                    avatar.asset_id if avatar else None,
                    data.university,
                    data.career,
                    data.phone,
                    data.bio,
                    json.dumps(data.interests),
                ),
            )
            conn.commit()
            return cursor.lastrowid
        except sqlite3.Error:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    async def _deliver(mailer: Mailer, to: str, subject: str, body: str) -> MailResult:
        # Mailers report failures as results; a misbehaving one that raises
        # is folded into the same shape so the saga sees a single outcome.
        try:
            return await mailer.send(to, subject, body)
        except Exception as exc:
            logger.exception("Mailer raised while sending to %s", to)
            return MailResult(ok=False, error=str(exc))

    @classmethod
    async def _compensate(
        cls,
        result: RegistrationResult,
        asset_store: AssetStore,
        avatar: Optional[StoredAsset],
    ) -> None:
        """Undo ``persist``: delete the unconfirmed account created by this run."""
        conn = get_connection()
        try:
            conn.execute(
                "DELETE FROM accounts WHERE id = ? AND confirmed = 0",
                (result.account_id,),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            result.record("compensate", False, str(exc))
            raise
        finally:
            conn.close()
        if avatar is not None:
            await cls._discard_avatar(asset_store, avatar)
        result.state = RegistrationState.ROLLED_BACK
        result.record("compensate", True)

    @staticmethod
    async def _discard_avatar(asset_store: AssetStore, avatar: StoredAsset) -> None:
        try:
            await asset_store.delete(avatar.asset_id)
        except AssetStoreError as exc:
            logger.warning("Could not delete avatar %s: %s", avatar.asset_id, exc)
