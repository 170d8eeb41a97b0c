"""
FastAPI dependencies resolving the collaborators stored on ``app.state``.

``main.create_app`` decides which asset store, mailer and realtime
publisher the process uses; endpoints ask for them through these
functions instead of importing module level singletons.
"""

from typing import Optional

from fastapi import Request, UploadFile

from ..infra.assets import MAX_MEDIA_BYTES, AssetStore, MediaFile
from ..infra.mail import Mailer
from ..infra.realtime import EventPublisher


def get_publisher(request: Request) -> EventPublisher:
    return request.app.state.publisher


def get_asset_store(request: Request) -> AssetStore:
    return request.app.state.asset_store


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


async def read_media(upload: Optional[UploadFile]) -> Optional[MediaFile]:
    """Load an uploaded file into memory.

    Browsers submit an empty part when no file was chosen; that counts
    as no file.  At most one byte past the size limit is read so the
    validator can still reject oversized files.
    """
    if upload is None or not upload.filename:
        return None
    content = await upload.read(MAX_MEDIA_BYTES + 1)
    await upload.close()
    return MediaFile(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        content=content,
    )
