# =============================================================================
# utils/pagination.py - Okta Link header cursor extraction
# =============================================================================

import re
from typing import Iterable, List, Optional, Union

NEXT_PAGE_INDICATOR = 'rel="next"'
NEXT_PAGE_PATTERN = re.compile(r"after=(\w+)&")

# requests folds repeated Link headers into one comma separated value
_LINK_SPLIT = re.compile(r",\s*(?=<)")


def split_link_header(header: Union[str, Iterable[str], None]) -> List[str]:
    """Split a (possibly folded) Link header into its individual link entries"""
    if not header:
        return []
    values = [header] if isinstance(header, str) else list(header)
    links = []
    for value in values:
        links.extend(part.strip() for part in _LINK_SPLIT.split(value) if part.strip())
    return links


def extract_next_cursor(header: Union[str, Iterable[str], None]) -> Optional[str]:
    """
    Return the `after` token of the rel="next" link, or None.

    A missing next link, or a next link the pattern cannot parse, both end
    pagination.
    """
    next_link = next(
        (link for link in split_link_header(header) if NEXT_PAGE_INDICATOR in link),
        None
    )
    if next_link is None:
        return None

    match = NEXT_PAGE_PATTERN.search(next_link)
    return match.group(1) if match else None
