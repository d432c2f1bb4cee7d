"""
Blocking page fetcher for a Tapatalk-hosted phpBB board.

Builds the topic, forum and member-profile URLs from numeric ids, performs
a single GET and hands back a parsed BeautifulSoup document. Any network
or HTTP error is reported as ``None`` ("resource absent"): the caller skips
the resource, nothing is retried.
"""

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from .config import BASE_URL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

# Resource kinds and their URL templates, relative to the board root
URL_TEMPLATES = {
    "topic": "viewtopic.php?t={id}&start={start}",
    "forum": "viewforum.php?f={id}&start={start}",
    "member": "memberlist.php?mode=viewprofile&u={id}",
}

HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
}


def build_url(base_url: str, kind: str, resource_id: int, start: int = 0) -> str:
    """
    Build the canonical URL for a resource.

    Example:
        build_url(BASE_URL, "topic", 42, start=20)
        # "https://www.tapatalk.com/groups/metanetfr/viewtopic.php?t=42&start=20"
    """
    try:
        template = URL_TEMPLATES[kind]
    except KeyError:
        raise ValueError(f"Unknown resource kind: {kind!r}") from None
    return base_url + template.format(id=resource_id, start=start)


class Fetcher:
    """
    Synchronous fetcher for board pages.

    Usage:
        with Fetcher() as fetcher:
            soup = fetcher.topic(123, start=10)
            if soup is None:
                ...  # topic does not exist or could not be fetched
    """

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        client: Optional[httpx.Client] = None
    ):
        """
        Args:
            base_url: Board root URL, with trailing slash
            timeout: Request timeout in seconds
            client: Optional pre-built httpx client (tests pass one with a
                    mock transport). A client created here is closed by close().
        """
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._own_client = client is None
        self.client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers=HEADERS,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if self._own_client:
            self.client.close()

    def url(self, kind: str, resource_id: int, start: int = 0) -> str:
        return build_url(self.base_url, kind, resource_id, start)

    def fetch(self, kind: str, resource_id: int, start: int = 0) -> Optional[BeautifulSoup]:
        """
        Fetch and parse one page.

        Returns:
            The parsed document, or None when the request failed or the
            server answered with an error status
        """
        url = self.url(kind, resource_id, start)
        logger.debug("GET %s", url)
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Skipping %s %d (start=%d): %s", kind, resource_id, start, e)
            return None
        return BeautifulSoup(response.text, "lxml")

    def topic(self, topic_id: int, start: int = 0) -> Optional[BeautifulSoup]:
        return self.fetch("topic", topic_id, start)

    def forum(self, forum_id: int, start: int = 0) -> Optional[BeautifulSoup]:
        return self.fetch("forum", forum_id, start)

    def member(self, user_id: int) -> Optional[BeautifulSoup]:
        return self.fetch("member", user_id)
