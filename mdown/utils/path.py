"""
Utilities for validating source URLs and deriving output file names.
"""

import posixpath
from urllib.parse import unquote, urlsplit

from pathvalidate import sanitize_filename

from mdown.exceptions import InvalidUrlError

FALLBACK_FILENAME = "index.html"


def validate_url(url: str) -> str:
    """
    Ensures the URL is an absolute http(s) URL with a host.

    Raises:
        InvalidUrlError: If the URL is empty or unsupported.
    """
    if not url or not url.strip():
        raise InvalidUrlError("No url given.")
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https"):
        raise InvalidUrlError(
            f"Unsupported URL scheme '{parts.scheme or '(none)'}' in '{url}'."
        )
    if not parts.netloc:
        raise InvalidUrlError(f"URL '{url}' has no host.")
    return url.strip()


def output_name_from_url(url: str) -> str:
    """
    Returns the file name a URL should be saved under: the basename of its
    path, percent-decoded and made safe for the local filesystem.

    >>> output_name_from_url("http://example.com/files/archive.tar.gz?x=1")
    'archive.tar.gz'
    >>> output_name_from_url("http://example.com/")
    'index.html'
    """
    path = urlsplit(url).path
    basename = posixpath.basename(unquote(path))
    name = sanitize_filename(basename, platform="auto")
    if name in ("", ".", ".."):
        return FALLBACK_FILENAME
    return name

