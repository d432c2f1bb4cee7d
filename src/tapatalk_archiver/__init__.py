"""
Tapatalk Archiver

Scrapes a phpBB board hosted on Tapatalk (forums, topics, posts and member
profiles) into a single-file SQLite database.

Main components:
- ForumArchiver: Runs the forum, topic and member passes
- Fetcher: Builds board URLs and fetches parsed pages
- Archive: SQLAlchemy-backed storage with find-or-create upserts
- parser: Extractors turning pages into record dataclasses

Usage:
    from tapatalk_archiver import ArchiverConfig, ForumArchiver

    with ForumArchiver(ArchiverConfig(forum_end=5)) as archiver:
        archiver.run()
"""

from .config import ArchiverConfig
from .database import Archive
from .errors import ArchiverError, MissingContainerError
from .fetcher import Fetcher
from .models import ForumRecord, Pagination, PostRecord, TopicDetail, TopicSummary, UserProfile
from .scraper import ForumArchiver
from .utils import scale_count

__all__ = [
    'ArchiverConfig',
    'Archive',
    'ArchiverError',
    'MissingContainerError',
    'Fetcher',
    'ForumArchiver',
    'ForumRecord',
    'Pagination',
    'PostRecord',
    'TopicDetail',
    'TopicSummary',
    'UserProfile',
    'scale_count',
]

__version__ = '1.0.0'
