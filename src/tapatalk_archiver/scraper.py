"""
Archiver for a Tapatalk-hosted phpBB board.

Walks forums, topics and member profiles by numeric id, extracts records
from each page and upserts them into the SQLite archive. Everything runs
in one thread with blocking I/O; a page that cannot be fetched, or that
fails its initial lookup, is skipped and the walk continues.

The three passes depend on each other and run in this order:

1. forums  - forum metadata plus the topic summaries every forum page lists
2. topics  - full post threads; post authors appear here as stub users
3. members - profiles for every user id now known to the archive

The member list itself cannot be enumerated, so users who never posted are
never discovered.

Target: https://www.tapatalk.com/groups/metanetfr/
"""

import logging
from typing import List, Optional

from tqdm import tqdm

from .config import ArchiverConfig
from .database import Archive
from .fetcher import Fetcher
from .models import ForumRecord, TopicSummary
from .parser import (
    extract_forum, extract_posts, extract_topic_detail,
    extract_topic_summaries, extract_user
)

logger = logging.getLogger(__name__)


class ForumArchiver:
    """
    Drives the fetcher, extractors and archive for every scrape pass.

    Usage:
        archiver = ForumArchiver(ArchiverConfig(database="tapa.sqlite"))
        archiver.run()

        # or a single resource
        archiver.setup()
        archiver.scrape_forum(1)
    """

    def __init__(
        self,
        config: Optional[ArchiverConfig] = None,
        fetcher: Optional[Fetcher] = None,
        archive: Optional[Archive] = None
    ):
        self.config = config or ArchiverConfig()
        self.fetcher = fetcher or Fetcher(self.config.base_url, timeout=self.config.timeout)
        self.archive = archive or Archive(self.config.database)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.fetcher.close()

    def setup(self) -> bool:
        """Create the database if missing, recording the configured ranges."""
        return self.archive.setup(self.config.range_settings())

    # -------------------------------------------------------
    # FORUMS
    # -------------------------------------------------------

    def scrape_forum(self, forum_id: int) -> Optional[ForumRecord]:
        """
        Archive one forum and every topic it lists.

        Reads the forum's metadata and pagination from page 0, then walks
        every page, saving the announcement and normal topic listings.

        Returns:
            The forum record, or None if the forum was skipped
        """
        soup = self.fetcher.forum(forum_id)
        if soup is None:
            return None
        forum = extract_forum(soup, forum_id)
        if forum is None:
            logger.debug("Forum %d: no forum title, skipping", forum_id)
            return None

        self.archive.save_forum(forum)

        seen = 0
        with tqdm(total=forum.topic_count, desc=f"Parsing forum {forum_id}",
                  unit="topic", leave=False) as pbar:
            for page in range(forum.pages):
                if page:
                    soup = self.fetcher.forum(forum_id, start=page * self.config.topics_per_page)
                    if soup is None:
                        continue
                topics = extract_topic_summaries(soup, forum_id)
                self.archive.save_topic_summaries(topics)

                seen += self._count_progress(topics)
                pbar.update(max(min(seen, forum.topic_count) - pbar.n, 0))
                pbar.set_postfix_str(f"Reading topic {seen} / {forum.topic_count}")

        logger.debug("Forum %d: %d pages, %d topics", forum_id, forum.pages, seen)
        return forum

    @staticmethod
    def _count_progress(topics: List[TopicSummary]) -> int:
        # Announcements repeat on every page and are not part of the topic count
        return sum(1 for t in topics if not t.announcement)

    def scrape_forums(self) -> int:
        """Archive every forum in the configured range; returns forums saved."""
        logger.info("Forum pass: ids %d..%d", self.config.forum_start, self.config.forum_end)
        saved = sum(
            1 for forum_id in self.config.forum_ids
            if self.scrape_forum(forum_id) is not None
        )
        logger.info("Forum pass complete: %d forums", saved)
        return saved

    # -------------------------------------------------------
    # TOPICS
    # -------------------------------------------------------

    def scrape_topic(self, topic_id: int) -> int:
        """
        Archive one topic and all of its posts.

        Page 0 gives the topic header and pagination totals; pages
        1..pages-1 are fetched at ``posts_per_page`` offsets.

        Returns:
            Number of posts saved, 0 if the topic was skipped

        Raises:
            MissingContainerError: A fetched page has no post list
        """
        soup = self.fetcher.topic(topic_id)
        if soup is None:
            return 0
        detail = extract_topic_detail(soup, topic_id)
        if detail is None:
            logger.debug("Topic %d: no headline, skipping", topic_id)
            return 0

        self.archive.save_topic_detail(detail)

        saved = 0
        for page in range(detail.pages):
            if page:
                soup = self.fetcher.topic(topic_id, start=page * self.config.posts_per_page)
                if soup is None:
                    continue
            posts = extract_posts(soup, topic_id, self.config.author_mode)
            self.archive.save_posts(posts)
            saved += len(posts)

        return saved

    def scrape_topics(self) -> int:
        """Archive every topic in the configured range; returns posts saved."""
        logger.info("Topic pass: ids %d..%d", self.config.topic_start, self.config.topic_end)
        total = 0
        for topic_id in tqdm(self.config.topic_ids, desc="Topics", unit="topic"):
            total += self.scrape_topic(topic_id)
        logger.info("Topic pass complete: %d posts", total)
        return total

    # -------------------------------------------------------
    # MEMBERS
    # -------------------------------------------------------

    def scrape_member(self, user_id: int) -> bool:
        """Back-fill one user's profile; returns False if skipped."""
        soup = self.fetcher.member(user_id)
        if soup is None:
            return False
        profile = extract_user(soup, user_id)
        if profile is None:
            logger.debug("Member %d: no profile, skipping", user_id)
            return False
        self.archive.save_user_profile(profile)
        return True

    def scrape_members(self) -> int:
        """Back-fill profiles for every known user; returns profiles saved."""
        user_ids = self.archive.user_ids()
        logger.info("Member pass: %d known users", len(user_ids))
        saved = sum(
            1 for user_id in tqdm(user_ids, desc="Members", unit="user")
            if self.scrape_member(user_id)
        )
        logger.info("Member pass complete: %d profiles", saved)
        return saved

    def run(self) -> dict:
        """Set up the database and run all three passes in order."""
        self.setup()
        return {
            "forums": self.scrape_forums(),
            "posts": self.scrape_topics(),
            "members": self.scrape_members(),
        }
