import re
from unittest.mock import patch

import pytest

from app.services.namer import MAX_SUFFIX, generate_filename, original_extension


def test_name_shape():
    assert generate_filename("file", "photo.jpg", now_ms=1700000000123, suffix=987654321) == \
        "file-1700000000123-987654321.jpg"


def test_defaults_use_clock_and_random():
    with patch("app.services.namer.time.time", return_value=1700000000.5), \
            patch("app.services.namer.random.randint", return_value=42) as randint:
        assert generate_filename("image", "a.png") == "image-1700000000500-42.png"
    randint.assert_called_once_with(0, MAX_SUFFIX)


def test_generated_name_pattern():
    name = generate_filename("file", "clip.MP4")
    match = re.match(r"^file-(\d+)-(\d+)\.MP4$", name)
    assert match
    assert 0 <= int(match.group(2)) <= MAX_SUFFIX


@pytest.mark.parametrize("original, expected", [
    ("photo.jpg", ".jpg"),
    ("PHOTO.JPG", ".JPG"),
    ("archive.tar.gz", ".gz"),
    ("README", ""),
    (".env", ""),
    ("trailing.", "."),
    ("dir/sub/photo.png", ".png"),
    ("C:\\Users\\me\\photo.webp", ".webp"),
    ("folder.d/file", ""),
    ("", ""),
    (None, ""),
])
def test_original_extension(original, expected):
    assert original_extension(original) == expected


def test_same_millisecond_names_differ():
    names = {generate_filename("file", "same.jpg", now_ms=1) for _ in range(100)}
    assert len(names) > 1
