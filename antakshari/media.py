"""
Antakshari Round Shuffler - Media Host (Nextcloud WebDAV)

Song intros are uploaded to a folder on Nextcloud and played back from a
public URL.  The catalog needs two things from it: store a staged file
(creating the media folder on the way) and release a stored file.

Uses httpx for async HTTP operations with Basic Auth against the Nextcloud
WebDAV endpoint.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import quote

import aiofiles
import httpx
from loguru import logger

from antakshari.config import (
    MEDIA_PUBLIC_BASE_URL,
    NEXTCLOUD_MEDIA_PATH,
    NEXTCLOUD_PASSWORD,
    NEXTCLOUD_URL,
    NEXTCLOUD_USERNAME,
    WEBDAV_BASE_URL,
)
from antakshari.errors import MediaHostError


@dataclass
class MediaRef:
    """Where an uploaded file lives: WebDAV path + URL players can fetch."""

    remote_path: str
    url: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _is_configured() -> bool:
    """Return True if Nextcloud WebDAV credentials are configured."""
    return bool(NEXTCLOUD_URL and NEXTCLOUD_USERNAME and NEXTCLOUD_PASSWORD)


def is_configured() -> bool:
    """Public check for whether the media host is configured."""
    return _is_configured()


def _encode_path(remote_path: str) -> str:
    clean = remote_path.strip("/")
    # Encode path segments individually to preserve slashes
    return "/".join(quote(seg, safe="") for seg in clean.split("/")) if clean else ""


def _build_url(remote_path: str = "/") -> str:
    """Build the full WebDAV URL for a given remote path."""
    base = WEBDAV_BASE_URL.rstrip("/")
    encoded = _encode_path(remote_path)
    return f"{base}/{encoded}" if encoded else base


def _auth() -> httpx.BasicAuth:
    return httpx.BasicAuth(NEXTCLOUD_USERNAME, NEXTCLOUD_PASSWORD)


def _safe_name(value: str) -> str:
    """Reduce an uploaded filename to something safe for a URL path."""
    stem = Path(value).stem
    suffix = Path(value).suffix.lower()
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", stem).strip("._") or "audio"
    return f"{stem[:80]}{suffix}"


def media_path_for(filename: str) -> str:
    """A fresh, collision-free remote path for an uploaded file."""
    return f"{NEXTCLOUD_MEDIA_PATH.rstrip('/')}/{uuid.uuid4().hex[:12]}-{_safe_name(filename)}"


def public_url(remote_path: str) -> str:
    """URL players use to stream *remote_path*."""
    if MEDIA_PUBLIC_BASE_URL:
        # The public share points at the media folder itself
        relative = remote_path
        prefix = NEXTCLOUD_MEDIA_PATH.rstrip("/")
        if relative.startswith(prefix + "/"):
            relative = relative[len(prefix):]
        return f"{MEDIA_PUBLIC_BASE_URL.rstrip('/')}/{_encode_path(relative)}"
    return _build_url(remote_path)


# ---------------------------------------------------------------------------
# Upload / release
# ---------------------------------------------------------------------------
_UPLOAD_OK = (200, 201, 204)
_DELETE_OK = (200, 204)


async def _ensure_folder(client: httpx.AsyncClient, folder: str) -> None:
    """MKCOL every level of *folder*; 405 means the level already exists."""
    current = ""
    for part in PurePosixPath(folder.strip("/")).parts:
        current = f"{current}/{part}"
        response = await client.request("MKCOL", _build_url(current))
        if response.status_code not in (201, 405):
            logger.warning(
                "⚠️ MKCOL {} answered {}", current, response.status_code
            )


async def upload_audio(
    local_path: str,
    filename: str,
    content_type: str = "application/octet-stream",
) -> MediaRef:
    """
    Push a staged audio file into the media folder and return where it lives.

    Raises :class:`MediaHostError` if the host is not configured, cannot be
    reached, or rejects the file.
    """
    if not _is_configured():
        raise MediaHostError("Media host is not configured")

    async with aiofiles.open(local_path, "rb") as f:
        content = await f.read()

    remote_path = media_path_for(filename)
    try:
        async with httpx.AsyncClient(auth=_auth(), timeout=300.0) as client:
            await _ensure_folder(client, str(PurePosixPath(remote_path).parent))
            response = await client.put(
                _build_url(remote_path),
                content=content,
                headers={"Content-Type": content_type},
            )
    except httpx.HTTPError as e:
        logger.error("❌ Media host unreachable while uploading '{}': {}", filename, e)
        raise MediaHostError(f"Failed to upload '{filename}' to the media host") from e

    if response.status_code not in _UPLOAD_OK:
        logger.error(
            "❌ Media host refused '{}' ({}): {}",
            filename,
            response.status_code,
            response.text[:200],
        )
        raise MediaHostError(f"Failed to upload '{filename}' to the media host")

    logger.info("⬆️ Intro audio stored at {} ({} bytes)", remote_path, len(content))
    return MediaRef(remote_path=remote_path, url=public_url(remote_path))


async def release_audio(remote_path: str) -> bool:
    """
    Delete hosted audio.  Returns True only if the host confirmed the delete.

    A missing path, an unconfigured host or a failed request are reported by
    returning False; callers decide whether that matters.
    """
    if not remote_path or not _is_configured():
        return False

    try:
        async with httpx.AsyncClient(auth=_auth(), timeout=30.0) as client:
            response = await client.request("DELETE", _build_url(remote_path))
    except httpx.HTTPError as e:
        logger.error("❌ Media host unreachable while releasing {}: {}", remote_path, e)
        return False

    if response.status_code in _DELETE_OK:
        logger.info("🗑️ Released hosted audio {}", remote_path)
        return True
    if response.status_code == 404:
        logger.warning("⚠️ Hosted audio already gone: {}", remote_path)
    else:
        logger.error("❌ Release of {} failed ({})", remote_path, response.status_code)
    return False
