"""Shared fixtures."""

import io

import pytest
from PIL import Image

from splitbill.models.bill import UserContext


def make_image(fmt: str = "JPEG", size=(20, 20)) -> bytes:
    """Render a small image in the given Pillow format."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(255, 255, 255)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    return make_image("JPEG")


@pytest.fixture
def png_bytes():
    return make_image("PNG")


@pytest.fixture
def gif_bytes():
    return make_image("GIF")


@pytest.fixture
def user():
    return UserContext(user_id="user-1", access_token="token-abc", email="ana@example.com")


@pytest.fixture
def other_user():
    return UserContext(user_id="user-2", access_token="token-xyz")
