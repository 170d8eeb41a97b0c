import pytest
from fastapi.testclient import TestClient

from uconnect_api.app.core.config import settings
from uconnect_api.app.core.db import get_connection, init_db
from uconnect_api.app.core.security import ROLE_ADMINISTRATOR, ROLE_STUDENT, hash_password, issue_token
from uconnect_api.app.infra.assets import AssetStoreError, StoredAsset
from uconnect_api.app.infra.mail import MailResult
from uconnect_api.app.main import create_app


PASSWORD = "Password123!"
# Hashing is slow on purpose; every fixture account shares one hash.
PASSWORD_HASH = hash_password(PASSWORD)


class FakeAssetStore:
    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_upload = False
        self.fail_delete = False

    async def upload(self, media, folder):
        if self.fail_upload:
            raise AssetStoreError("upload refused")
        self.uploads.append((folder, media.filename))
        asset_id = f"{folder}/asset{len(self.uploads)}"
        return StoredAsset(url=f"https://assets.test/{asset_id}.png", asset_id=asset_id)

    async def delete(self, asset_id):
        if self.fail_delete:
            raise AssetStoreError("delete refused")
        self.deleted.append(asset_id)


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.result = MailResult(ok=True)

    async def send(self, to, subject, body_html):
        self.sent.append((to, subject, body_html))
        return self.result


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, channel, payload):
        self.events.append((channel.name, payload))

    def names(self):
        return [name for name, _ in self.events]


class Factory:
    """Writes fixture rows straight to the database."""

    def account(
        self,
        username,
        role=ROLE_STUDENT,
        confirmed=True,
        active=True,
        email=None,
        avatar_asset_id=None,
    ):
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO accounts (name, username, email, password, role, confirmed, active,
                                      avatar_url, avatar_asset_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    username.title(),
                    username,
                    email or f"{username}@puce.edu.ec",
                    PASSWORD_HASH,
                    role,
                    int(confirmed),
                    int(active),
                    f"https://assets.test/{avatar_asset_id}.png" if avatar_asset_id else None,
                    avatar_asset_id,
                ),
            )
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def admin(self, username="admin"):
        return self.account(username, role=ROLE_ADMINISTRATOR)

    def community(self, name, *members):
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("INSERT INTO communities (name) VALUES (?)", (name,))
            community_id = cursor.lastrowid
            for account_id in members:
                cursor.execute(
                    "INSERT INTO community_members (community_id, account_id) VALUES (?, ?)",
                    (community_id, account_id),
                )
            conn.commit()
            return community_id
        finally:
            conn.close()

    def half_edge(self, account_id, friend_id):
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO friendships (account_id, friend_id) VALUES (?, ?)",
                (account_id, friend_id),
            )
            conn.commit()
        finally:
            conn.close()

    def fetch(self, sql, *params):
        conn = get_connection()
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()

    @staticmethod
    def headers(account_id, role=ROLE_STUDENT):
        return {"Authorization": f"Bearer {issue_token(account_id, role)}"}


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "uconnect-test.db"))
    init_db()


@pytest.fixture
def factory():
    return Factory()


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def client(publisher, asset_store, mailer):
    app = create_app(publisher=publisher, asset_store=asset_store, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def live_client(asset_store, mailer):
    """Client whose mutations fan out through the app's own WebSocket hub."""
    app = create_app(asset_store=asset_store, mailer=mailer)
    with TestClient(app) as test_client:
        yield test_client
