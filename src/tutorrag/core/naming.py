"""Deterministic naming for tenants, namespaces and workspace files."""

from __future__ import annotations

import re
import time
from urllib.parse import parse_qs, urlparse

from tutorrag.core.exceptions import InvalidRequestError

NAMESPACE_PREFIX = "tutor-chatbot-"

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_TITLE_UNSAFE = re.compile(r"[^a-zA-Z0-9]")
_CHANNEL_PATH = re.compile(r"^/(?:@([^/]+)|c/([^/]+)|channel/([^/]+)|user/([^/]+))")


def channel_handle(channel_identifier: str) -> str:
    """Extract the channel name part of a URL, ``@handle`` or bare name."""
    identifier = channel_identifier.strip()
    if identifier.startswith(("http://", "https://")):
        path = urlparse(identifier).path
        match = _CHANNEL_PATH.match(path)
        if match:
            return next(group for group in match.groups() if group)
        return path.strip("/").split("/")[0]
    return identifier.lstrip("@")


def tenant_id_for(channel_identifier: str) -> str:
    """Map a channel identifier to its tenant id.

    Lowercased, with every non-alphanumeric character stripped, so
    ``"My Channel!"`` becomes ``"mychannel"``.

    Raises:
        InvalidRequestError: If nothing usable is left after sanitizing.
    """
    tenant_id = _NON_ALNUM.sub("", channel_handle(channel_identifier).lower())
    if not tenant_id:
        raise InvalidRequestError(
            f"Channel identifier {channel_identifier!r} has no alphanumeric characters",
            field="channel_identifier",
        )
    return tenant_id


def namespace_for(tenant_id: str, prefix: str = NAMESPACE_PREFIX) -> str:
    """Vector namespace key for a tenant, e.g. ``tutor-chatbot-mychannel``."""
    return f"{prefix}{_NON_ALNUM.sub('', tenant_id.lower())}"


def channel_videos_url(channel_identifier: str) -> str:
    """Resolve an identifier to a URL yt-dlp can list."""
    identifier = channel_identifier.strip()
    if identifier.startswith(("http://", "https://")):
        return identifier
    return f"https://www.youtube.com/@{identifier.lstrip('@')}/videos"


def sanitize_title(title: str, max_length: int = 40) -> str:
    """Replace unsafe filename characters with underscores and truncate."""
    return _TITLE_UNSAFE.sub("_", title)[:max_length]


def unique_video_id(video_id: str | None, url: str | None = None) -> str:
    """Video id, else the ``v=`` query parameter of its URL, else a millisecond stamp."""
    if video_id:
        return video_id
    if url:
        values = parse_qs(urlparse(url).query).get("v")
        if values and values[0]:
            return values[0]
    return str(int(time.time() * 1000))


def audio_basename(title: str, video_id: str | None, url: str | None = None) -> str:
    """File stem for a video's audio and transcript files."""
    return f"{sanitize_title(title)}_{unique_video_id(video_id, url)}"
