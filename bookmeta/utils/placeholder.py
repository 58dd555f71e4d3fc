# bookmeta/utils/placeholder.py
"""
Placeholder cover detection.

Providers sometimes answer HTTP 200 with an "image not available" picture
instead of an error, so a cover is checked twice: once by URL shape and, when
the image can be fetched, once by its decoded pixel size. Both checks are
advisory; callers never fail because of them.
"""

import io
import logging
from typing import Optional, Tuple
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

LOCAL_PLACEHOLDER_PATH = "/placeholder.svg"

GOOGLE_COVER_HOST = "books.google.com"
GOOGLE_COVER_PATH = "/books/content"

# Known "no cover" images, by provider
PLACEHOLDER_DIMENSIONS = {
    "google": {(120, 192), (128, 188), (128, 196), (128, 197)},
    "isbndb": {(180, 270), (130, 195), (260, 390)},
}


def _is_google_content_url(parts) -> bool:
    return parts.hostname == GOOGLE_COVER_HOST and parts.path.startswith(GOOGLE_COVER_PATH)


def is_likely_placeholder_url(url: Optional[str]) -> bool:
    """
    Guess from the URL alone whether a cover is a placeholder.

    Google Books content URLs without `edge=curl` frequently render the
    "image not available" picture, so they count as placeholders.
    """
    if not url or not url.strip():
        return True
    url = url.strip()
    if url == LOCAL_PLACEHOLDER_PATH:
        return True

    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    if parts.path.endswith(LOCAL_PLACEHOLDER_PATH) or "placeholder" in parts.path.lower():
        return True

    if _is_google_content_url(parts):
        params = dict(parse_qsl(parts.query))
        return params.get("edge") != "curl"

    return False


def is_likely_placeholder_dimensions(width: int, height: int) -> bool:
    # Open Library answers a missing cover with a single pixel
    if width <= 1 and height <= 1:
        return True
    for sizes in PLACEHOLDER_DIMENSIONS.values():
        if (width, height) in sizes:
            return True
    return False


def normalize_cover_url(raw_url: Optional[str]) -> Optional[str]:
    """
    Rewrite a cover URL into its most reliable variant.

    Forces https; Google Books content URLs get `edge=curl` and `zoom=2`.
    Anything that does not parse as an absolute URL is returned unchanged.
    """
    if not raw_url:
        return raw_url
    try:
        parts = urlsplit(raw_url)
    except ValueError:
        return raw_url
    if not parts.scheme or not parts.netloc:
        return raw_url

    query = parts.query
    if _is_google_content_url(parts):
        params = dict(parse_qsl(parts.query, keep_blank_values=True))
        if not params.get("edge"):
            params["edge"] = "curl"
        if params.get("zoom") in (None, "", "1"):
            params["zoom"] = "2"
        query = urlencode(params)

    return urlunsplit(("https", parts.netloc, parts.path, query, parts.fragment))


def fetch_cover_dimensions(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: int = 10,
) -> Optional[Tuple[int, int]]:
    """
    Download a cover and decode it to read its pixel size.

    Returns:
        (width, height), or None if the image could not be fetched or decoded
    """
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        if response.status_code != 200:
            logger.debug(f"Cover fetch got status {response.status_code} for {url}")
            return None
        with Image.open(io.BytesIO(response.content)) as image:
            return image.size
    except requests.exceptions.RequestException as e:
        logger.debug(f"Cover fetch failed for {url}: {e}")
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Cover at {url} is not a decodable image: {e}")
    return None


def is_placeholder_image(url: Optional[str], session: Optional[requests.Session] = None) -> bool:
    """URL check first; fall back to the decoded size when the URL looks fine"""
    if is_likely_placeholder_url(url):
        return True
    size = fetch_cover_dimensions(url, session=session)
    if size is None:
        return False
    return is_likely_placeholder_dimensions(*size)
