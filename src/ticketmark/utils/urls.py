import re

from ticketmark.constants import PEOPLE_PATH_SEGMENT

WORK_ITEM_URL_PATTERN = re.compile(r'/(?:browse|issue)/([A-Z][A-Z0-9_]*-\d+)', re.IGNORECASE)
PROFILE_URL_PATTERN = re.compile(re.escape(PEOPLE_PATH_SEGMENT) + r'([^/?#\s]+)/?$')


def extract_work_item_key_from_url(url: str | None) -> str | None:
    """Extract a work item key from a link to it.

    Args:
        url: URL like 'https://example.atlassian.net/browse/ENG-42'

    Returns:
        The upper-cased key (e.g., 'ENG-42'), or None if the URL does not point at a work item
    """
    if not url or not isinstance(url, str):
        return None
    match = WORK_ITEM_URL_PATTERN.search(url)
    return match.group(1).upper() if match else None


def extract_account_id_from_url(url: str | None) -> str | None:
    if not url or not isinstance(url, str):
        return None
    match = PROFILE_URL_PATTERN.search(url)
    return match.group(1) if match else None


def build_profile_url(account_id: str, base_url: str | None = None) -> str:
    """Build the profile URL of a user, relative when no base URL is known."""
    if base_url:
        return f'{base_url.rstrip("/")}{PEOPLE_PATH_SEGMENT}{account_id}'
    return f'{PEOPLE_PATH_SEGMENT}{account_id}'


def build_work_item_url(key: str, base_url: str) -> str:
    return f'{base_url.rstrip("/")}/browse/{key}'
