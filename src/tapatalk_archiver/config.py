"""
Configuration for the Tapatalk archiver.

Module-level constants hold the defaults for the metanetfr board;
ArchiverConfig bundles them so the CLI can override any value per run.
"""

from dataclasses import dataclass, asdict
from typing import Dict

# Forum installation being archived
BASE_URL = "https://www.tapatalk.com/groups/metanetfr/"

# Single-file SQLite database
DATABASE = "tapa.sqlite"

# Inclusive id ranges walked by the forum and topic passes
FORUM_START = 1
FORUM_END = 66
TOPIC_START = 1
TOPIC_END = 24462

# phpBB page sizes (the ``start`` offset advances by these)
POSTS_PER_PAGE = 10
TOPICS_PER_PAGE = 25

REQUEST_TIMEOUT = 30.0

# How post authors are read from a topic page
AUTHOR_MODES = ("script", "profile", "auto")
AUTHOR_MODE = "auto"


@dataclass
class ArchiverConfig:
    """
    Settings for a scrape run.

    Attributes:
        base_url: Root URL of the forum installation (with trailing slash)
        database: Path to the SQLite database file
        forum_start / forum_end: Inclusive range of forum ids to walk
        topic_start / topic_end: Inclusive range of topic ids to walk
        posts_per_page: Posts shown per topic page
        topics_per_page: Topics shown per forum page
        timeout: HTTP client timeout in seconds
        author_mode: ``script``, ``profile`` or ``auto``
    """
    base_url: str = BASE_URL
    database: str = DATABASE
    forum_start: int = FORUM_START
    forum_end: int = FORUM_END
    topic_start: int = TOPIC_START
    topic_end: int = TOPIC_END
    posts_per_page: int = POSTS_PER_PAGE
    topics_per_page: int = TOPICS_PER_PAGE
    timeout: float = REQUEST_TIMEOUT
    author_mode: str = AUTHOR_MODE

    def __post_init__(self):
        if self.author_mode not in AUTHOR_MODES:
            raise ValueError(
                f"author_mode must be one of {AUTHOR_MODES}, got {self.author_mode!r}"
            )
        if not self.base_url.endswith("/"):
            self.base_url += "/"

    @property
    def forum_ids(self) -> range:
        return range(self.forum_start, self.forum_end + 1)

    @property
    def topic_ids(self) -> range:
        return range(self.topic_start, self.topic_end + 1)

    def range_settings(self) -> Dict[str, object]:
        """Values recorded in the ``configs`` table at setup time."""
        d = asdict(self)
        return {
            key: d[key]
            for key in ("base_url", "forum_start", "forum_end", "topic_start", "topic_end")
        }
