"""Tests for the scrape passes, run against a mocked board."""

from datetime import datetime

import pytest

from pages import forum_page, member_page, post_block, topic_page, topic_row
from tapatalk_archiver.errors import MissingContainerError


class TestScrapeTopic:
    def test_single_page(self, board, archiver, archive):
        board.add("topic", 1, topic_page(1, [post_block(11), post_block(12, uid=6, name="bob")]))
        assert archiver.scrape_topic(1) == 2
        counts = archive.counts()
        assert (counts["topics"], counts["posts"]) == (1, 2)
        assert archive.get("topic", 1).name == "First topic"

    def test_follows_pagination(self, board, archiver, archive, config):
        board.add("topic", 1, topic_page(1, [post_block(i) for i in range(1, 11)], total=23, pages=3))
        board.add("topic", 1, topic_page(1, [post_block(i) for i in range(11, 21)], total=23, pages=3),
                  start=10)
        board.add("topic", 1, topic_page(1, [post_block(i) for i in range(21, 24)], total=23, pages=3),
                  start=20)
        assert archiver.scrape_topic(1) == 23
        assert archive.counts()["posts"] == 23
        assert archive.get("topic", 1).posts == 23
        assert board.requests[-1].endswith("viewtopic.php?t=1&start=20")

    def test_missing_page_skipped(self, board, archiver, archive):
        board.add("topic", 1, topic_page(1, [post_block(1)], total=11, pages=2))
        assert archiver.scrape_topic(1) == 1

    def test_nonexistent_topic(self, archiver, archive):
        assert archiver.scrape_topic(404) == 0
        counts = archive.counts()
        assert (counts["topics"], counts["posts"]) == (0, 0)

    def test_page_without_headline_skipped(self, board, archiver, archive):
        board.add("topic", 2, "<html><body>The requested topic does not exist.</body></html>")
        assert archiver.scrape_topic(2) == 0
        assert archive.counts()["topics"] == 0

    def test_missing_post_list_propagates(self, board, archiver):
        board.add("topic", 3, '<html><body><h1 itemprop="headline">Broken</h1></body></html>')
        with pytest.raises(MissingContainerError):
            archiver.scrape_topic(3)

    def test_new_author_creates_named_stub(self, board, archiver, archive):
        board.add("topic", 1, topic_page(1, [post_block(11, uid=8, name="dave")], author=(8, "dave")))
        archiver.scrape_topic(1)
        user = archive.get("user", 8)
        assert user.name == "dave"
        assert user.rank is None and user.joined is None

    def test_idempotent(self, board, archiver, archive):
        board.add("topic", 1, topic_page(1, [post_block(i, body=f"post {i}") for i in range(1, 11)],
                                         total=12, pages=2))
        board.add("topic", 1, topic_page(1, [post_block(11), post_block(12, uid=6, name="bob")],
                                         total=12, pages=2), start=10)
        assert archiver.scrape_topic(1) == 12
        before = archive.counts()
        first = archive.get("post", 12)

        assert archiver.scrape_topic(1) == 12
        assert archive.counts() == before
        topic = archive.get("topic", 1)
        assert (topic.name, topic.posts, topic.user_id) == ("First topic", 12, 5)
        post = archive.get("post", 12)
        assert (post.user_id, post.date, post.content) == (first.user_id, first.date, first.content)
        assert archive.get("post", 3).content == "post 3"

    def test_post_dates_stored_in_utc(self, board, archiver, archive):
        board.add("topic", 1, topic_page(1, [post_block(11, date="2015-03-01T10:00:00+02:00")]))
        archiver.scrape_topic(1)
        assert archive.get("post", 11).date == datetime(2015, 3, 1, 8, 0)


class TestScrapeForum:
    def test_forum_and_topics(self, board, archiver, archive):
        board.add("forum", 2, forum_page(
            2, name="General", parents=[1],
            announcements=[topic_row(201, title="Rules")],
            topics=[topic_row(101), topic_row(102, uid=6, name="bob")],
        ))
        forum = archiver.scrape_forum(2)
        assert forum.name == "General"
        assert archive.get("forum", 2).parent_id == 1
        assert archive.get("topic", 201).announcement is True
        assert archive.get("topic", 101).announcement is False
        assert archive.counts()["topics"] == 3

    def test_follows_pagination(self, board, archiver, archive):
        first = [topic_row(i) for i in range(1, 26)]
        board.add("forum", 2, forum_page(2, announcements=[topic_row(500)], topics=first,
                                         total=30, pages=2))
        board.add("forum", 2, forum_page(2, announcements=[topic_row(500)],
                                         topics=[topic_row(i) for i in range(26, 31)],
                                         total=30, pages=2), start=25)
        archiver.scrape_forum(2)
        assert archive.counts()["topics"] == 31
        assert board.requests[-1].endswith("viewforum.php?f=2&start=25")

    def test_idempotent(self, board, archiver, archive):
        board.add("forum", 2, forum_page(2, announcements=[topic_row(201)],
                                         topics=[topic_row(101, views="1.2k")]))
        archiver.scrape_forum(2)
        before = archive.counts()
        archiver.scrape_forum(2)
        assert archive.counts() == before
        assert archive.get("topic", 101).views == 1200

    def test_nonexistent_forum(self, archiver, archive):
        assert archiver.scrape_forum(66) is None
        assert archive.counts()["forums"] == 0


class TestScrapeMember:
    def test_backfills_without_duplicate(self, board, archiver, archive):
        board.add("topic", 1, topic_page(1, [post_block(11, uid=5, name="alice")]))
        board.add("member", 5, member_page())
        archiver.scrape_topic(1)
        assert archive.get("user", 5).rank is None

        assert archiver.scrape_member(5) is True
        assert archive.counts()["users"] == 1
        user = archive.get("user", 5)
        assert (user.name, user.rank, user.post_count) == ("alice", "Veteran", 1234)
        assert sorted(g.id for g in user.groups) == [2, 7]

    def test_missing_profile(self, archiver):
        assert archiver.scrape_member(77) is False


class TestPasses:
    def test_run_all_passes(self, board, config, archiver, archive):
        board.add("forum", 1, forum_page(1, name="General", topics=[topic_row(1, uid=5)]))
        board.add("topic", 1, topic_page(1, [post_block(11, uid=5), post_block(12, uid=6, name="bob")],
                                         forum_id=1))
        board.add("topic", 3, topic_page(3, [post_block(31, uid=None)], forum_id=1, author=None))
        board.add("member", 5, member_page(name="alice"))
        board.add("member", 6, member_page(name="bob", rank="Newbie", fields={}))

        results = archiver.run()

        assert results == {"forums": 1, "posts": 3, "members": 2}
        counts = archive.counts()
        assert counts["forums"] == 1
        assert counts["topics"] == 2
        assert counts["posts"] == 3
        # alice, bob and the guest account
        assert counts["users"] == 3
        assert archive.get("user", 6).rank == "Newbie"
        assert not any("u=0" in url for url in board.requests)

    def test_forum_pass_walks_configured_range(self, board, archiver):
        archiver.scrape_forums()
        forum_urls = [url for url in board.requests if "viewforum.php" in url]
        assert len(forum_urls) == 3
