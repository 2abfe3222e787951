"""
Tests for JSON and YouTube helpers.
"""

import pytest

from vispark.utils import (
    InvalidVideoIdError,
    extract_bullets,
    extract_json_object,
    extract_video_id,
    normalize_video_id,
    parse_json_safe,
)

VIDEO_ID = "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "value",
    [
        VIDEO_ID,
        f"  {VIDEO_ID}  ",
        f"https://www.youtube.com/watch?v={VIDEO_ID}",
        f"https://youtube.com/watch?v={VIDEO_ID}&t=42s",
        f"https://m.youtube.com/watch?feature=share&v={VIDEO_ID}",
        f"https://youtu.be/{VIDEO_ID}",
        f"https://youtu.be/{VIDEO_ID}?si=abc",
        f"https://www.youtube.com/embed/{VIDEO_ID}",
        f"https://www.youtube.com/shorts/{VIDEO_ID}",
        f"https://www.youtube.com/live/{VIDEO_ID}?feature=shared",
    ],
)
def test_extract_video_id_accepts_common_forms(value):
    assert extract_video_id(value) == VIDEO_ID


@pytest.mark.parametrize(
    "value",
    [
        "",
        "short",
        "https://vimeo.com/123456789",
        "https://www.youtube.com/watch?v=tooShort",
        "https://www.youtube.com/channel/UCuAXFkgsw1L7xaCfnd5JJOw",
        f"https://www.youtube.com/watch?v={VIDEO_ID}%0A",
    ],
)
def test_extract_video_id_rejects_other_input(value):
    assert extract_video_id(value) is None


def test_normalize_video_id_raises():
    with pytest.raises(InvalidVideoIdError) as exc_info:
        normalize_video_id("not a video")

    assert exc_info.value.value == "not a video"
    assert isinstance(exc_info.value, ValueError)


def test_extract_json_object_from_fenced_block():
    text = 'Here you go:\n```json\n{"bullets": ["a", "b"]}\n```\nThanks'

    assert extract_json_object(text) == '{"bullets": ["a", "b"]}'


def test_extract_json_object_with_nested_braces_in_strings():
    text = 'prefix {"bullets": ["uses {curly} braces"]} suffix'

    assert extract_json_object(text) == '{"bullets": ["uses {curly} braces"]}'


def test_parse_json_safe_returns_default():
    assert parse_json_safe("{broken", default={}) == {}
    assert parse_json_safe("", default=None) is None
    assert parse_json_safe('{"a": 1}') == {"a": 1}


def test_extract_bullets():
    assert extract_bullets('{"bullets": ["First", " Second ", ""]}') == ["First", "Second"]
    assert extract_bullets("Just a paragraph.\n") == ["Just a paragraph."]
    assert extract_bullets(None) == []
    assert extract_bullets("   ") == []
