from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from bookmeta.utils import (
    is_likely_placeholder_dimensions,
    is_likely_placeholder_url,
    is_placeholder_image,
    normalize_cover_url,
    fetch_cover_dimensions,
)

from conftest import GOOGLE_COVER, OPEN_LIBRARY_COVER


@pytest.mark.unit
@pytest.mark.parametrize(
    "width,height,expected",
    [
        (128, 188, True),
        (120, 192, True),
        (180, 270, True),
        (1, 1, True),
        (600, 900, False),
        (128, 189, False),
    ],
)
def test_placeholder_dimensions(width: int, height: int, expected: bool) -> None:
    assert is_likely_placeholder_dimensions(width, height) is expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "url",
    [
        "",
        None,
        "   ",
        "/placeholder.svg",
        "https://example.com/images/placeholder-book.png",
        "https://books.google.com/books/content?id=abc&printsec=frontcover&img=1&zoom=1",
    ],
)
def test_placeholder_urls(url) -> None:
    assert is_likely_placeholder_url(url) is True


@pytest.mark.unit
@pytest.mark.parametrize("url", [GOOGLE_COVER, OPEN_LIBRARY_COVER])
def test_real_cover_urls_are_not_placeholders(url: str) -> None:
    assert is_likely_placeholder_url(url) is False


@pytest.mark.unit
def test_normalize_google_cover_adds_quality_flags() -> None:
    url = normalize_cover_url("http://books.google.com/books/content?id=abc&zoom=1")
    parts = urlsplit(url)
    params = parse_qs(parts.query)

    assert parts.scheme == "https"
    assert params["edge"] == ["curl"]
    assert params["zoom"] == ["2"]
    assert params["id"] == ["abc"]
    assert is_likely_placeholder_url(url) is False


@pytest.mark.unit
def test_normalize_forces_https_on_other_hosts() -> None:
    assert normalize_cover_url("http://covers.openlibrary.org/b/id/1-M.jpg") == "https://covers.openlibrary.org/b/id/1-M.jpg"


@pytest.mark.unit
@pytest.mark.parametrize("raw", [None, "", "not a url", "/placeholder.svg"])
def test_normalize_leaves_non_urls_alone(raw) -> None:
    assert normalize_cover_url(raw) == raw


@pytest.mark.unit
def test_fetch_reads_decoded_size(png_bytes) -> None:
    session = Mock()
    session.get.return_value = Mock(status_code=200, content=png_bytes(128, 188))

    assert fetch_cover_dimensions(OPEN_LIBRARY_COVER, session=session) == (128, 188)
    assert is_placeholder_image(OPEN_LIBRARY_COVER, session=session) is True


@pytest.mark.unit
def test_real_sized_image_is_not_placeholder(png_bytes) -> None:
    session = Mock()
    session.get.return_value = Mock(status_code=200, content=png_bytes(600, 900))

    assert is_placeholder_image(OPEN_LIBRARY_COVER, session=session) is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "response",
    [
        Mock(status_code=404, content=b""),
        Mock(status_code=200, content=b"<html>not an image</html>"),
    ],
)
def test_fetch_returns_none_when_undecodable(response) -> None:
    session = Mock()
    session.get.return_value = response
    assert fetch_cover_dimensions(OPEN_LIBRARY_COVER, session=session) is None


@pytest.mark.unit
def test_fetch_returns_none_on_transport_error() -> None:
    session = Mock()
    session.get.side_effect = requests.exceptions.ConnectionError("refused")

    assert fetch_cover_dimensions(OPEN_LIBRARY_COVER, session=session) is None
    # Fetch failures are advisory
    assert is_placeholder_image(OPEN_LIBRARY_COVER, session=session) is False
