from typing import Tuple
from urllib.parse import urldefrag, urlparse

ALLOWED_SCHEMES = ("http", "https")


def normalize_url(url: str) -> Tuple[str, bool]:
    """Trim, drop any #fragment and default to https://. Returns (url, was_modified)."""
    normalized = urldefrag(url.strip())[0]
    if not urlparse(normalized).scheme:
        normalized = f"https://{normalized}"
    return normalized, normalized != url


def validate_url(url: str) -> Tuple[bool, str, str]:
    """Returns (is_valid, normalized_url, error_message)."""
    if not url or not url.strip():
        return False, "", "URL cannot be empty"

    normalized_url, _ = normalize_url(url)
    try:
        parsed = urlparse(normalized_url)
        hostname = parsed.hostname
    except ValueError as e:
        return False, normalized_url, f"URL parsing error: {str(e)}"

    if parsed.scheme not in ALLOWED_SCHEMES:
        return False, normalized_url, f"Invalid URL scheme: {parsed.scheme} (must be http or https)"
    if not hostname:
        return False, normalized_url, "Invalid URL format: missing domain"

    return True, normalized_url, ""


def site_origin(url: str) -> str:
    """scheme://host[:port] of a URL, the base for robots.txt, ads.txt and sitemap.xml."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"
