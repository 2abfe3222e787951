"""
Shared helpers.

Modules:
    json_utils: JSON/bullet extraction from LLM summary output
    youtube_utils: Video ID extraction from IDs and YouTube URLs
"""

from vispark.utils.json_utils import extract_bullets, extract_json_object, parse_json_safe
from vispark.utils.youtube_utils import (
    InvalidVideoIdError,
    extract_video_id,
    normalize_video_id,
)

__all__ = [
    # json_utils
    "extract_bullets",
    "extract_json_object",
    "parse_json_safe",
    # youtube_utils
    "InvalidVideoIdError",
    "extract_video_id",
    "normalize_video_id",
]
