"""Deterministic ids for content items and authors.

Ids are pure functions of their URL so that re-encountering the same URL maps
to the same row without a lookup first.
"""

import hashlib
import re

CONTENT_ID_LENGTH = 32
AUTHOR_ID_LENGTH = 16
USERNAME_MAX_LENGTH = 64

PROFILE_URL_PATTERN = re.compile(r"linkedin\.com/in/([^/?#]+)")


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def generate_content_id(url: str) -> str:
    """Fixed-length id for a content URL."""
    return _digest(url)[:CONTENT_ID_LENGTH]


def generate_author_id(profile_url: str) -> str:
    """Author id from a profile URL.

    ``https://www.linkedin.com/in/jane-doe/`` -> ``jane-doe``. Anything that is
    not a personal profile URL (company pages, redirects) is hashed instead.
    """
    match = PROFILE_URL_PATTERN.search(profile_url)
    if match:
        return match.group(1)[:USERNAME_MAX_LENGTH]
    return _digest(profile_url)[:AUTHOR_ID_LENGTH]
