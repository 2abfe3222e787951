"""
YouTube identifier parsing.

Accepts bare video IDs and the common URL shapes users paste:
- https://www.youtube.com/watch?v=dQw4w9WgXcQ
- https://youtu.be/dQw4w9WgXcQ
- https://www.youtube.com/embed/dQw4w9WgXcQ
- https://www.youtube.com/shorts/dQw4w9WgXcQ
"""

import re
from urllib.parse import parse_qs, urlparse

VIDEO_ID_PATTERN = re.compile(r"[a-zA-Z0-9_-]{11}")


class InvalidVideoIdError(ValueError):
    """Raised when input is neither a video ID nor a YouTube URL."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Not a YouTube video ID or URL: {value!r}")


def extract_video_id(value: str) -> str | None:
    """
    Extract the 11-character video ID from an ID or YouTube URL.

    Args:
        value: Raw user input

    Returns:
        Video ID, or None if the input is not recognized
    """
    if not value:
        return None

    value = value.strip()
    if VIDEO_ID_PATTERN.fullmatch(value):
        return value

    parsed = urlparse(value)
    host = parsed.netloc.lower()

    candidate: str | None = None
    if host in ("youtu.be", "www.youtu.be"):
        candidate = parsed.path.lstrip("/").split("/")[0]
    elif host.endswith("youtube.com"):
        candidate = parse_qs(parsed.query).get("v", [None])[0]
        if not candidate:
            for marker in ("/embed/", "/shorts/", "/live/"):
                if marker in parsed.path:
                    candidate = parsed.path.split(marker, 1)[1].split("/")[0]
                    break

    if candidate and VIDEO_ID_PATTERN.fullmatch(candidate):
        return candidate
    return None


def normalize_video_id(value: str) -> str:
    """
    Same as extract_video_id() but raises on unrecognized input.

    Raises:
        InvalidVideoIdError: If no video ID can be extracted
    """
    video_id = extract_video_id(value)
    if video_id is None:
        raise InvalidVideoIdError(value)
    return video_id
