"""Tests for data models and configuration."""

import pytest

from tapatalk_archiver.config import ArchiverConfig
from tapatalk_archiver.models import (
    ForumRecord, Pagination, PostRecord, TopicDetail, TopicSummary, UserProfile
)


class TestPostRecord:
    def test_guest_defaults(self):
        post = PostRecord(id=1, topic_id=2)
        assert post.user_id == 0
        assert post.username == "Guest"
        assert post.content == ""

    def test_to_dict_omits_missing_date(self):
        d = PostRecord(id=1, topic_id=2).to_dict()
        assert "date" not in d
        assert d["user_id"] == 0


class TestTopicRecords:
    def test_summary_flags_default_false(self):
        topic = TopicSummary(id=10, forum_id=2)
        assert not (topic.pinned or topic.locked or topic.announcement or topic.poll)
        assert "last_post_id" not in topic.to_dict()

    def test_detail_without_forum(self):
        detail = TopicDetail(id=10, name="T")
        assert detail.forum_id is None
        assert "forum_id" not in detail.to_dict()


class TestForumRecord:
    def test_root_forum(self):
        forum = ForumRecord(id=1, name="General")
        assert forum.parent_id == 0
        assert forum.pages == 1


class TestUserProfile:
    def test_missing_fields_omitted(self):
        profile = UserProfile(id=5, name="alice")
        d = profile.to_dict()
        assert d == {"id": 5, "name": "alice"}

    def test_groups(self):
        profile = UserProfile(id=5, groups=[(2, "Registered users"), (7, "Moderators")])
        assert profile.to_dict()["groups"] == [(2, "Registered users"), (7, "Moderators")]

    def test_empty_group_list_kept(self):
        assert UserProfile(id=5, groups=[]).to_dict()["groups"] == []


class TestPagination:
    def test_defaults(self):
        assert Pagination() == Pagination(items=0, pages=1)


class TestArchiverConfig:
    def test_defaults(self):
        config = ArchiverConfig()
        assert config.forum_ids == range(1, 67)
        assert config.topic_ids == range(1, 24463)
        assert config.posts_per_page == 10
        assert config.topics_per_page == 25

    def test_trailing_slash_added(self):
        assert ArchiverConfig(base_url="https://x.test/board").base_url == "https://x.test/board/"

    def test_invalid_author_mode(self):
        with pytest.raises(ValueError):
            ArchiverConfig(author_mode="guess")

    def test_range_settings(self):
        settings = ArchiverConfig(forum_end=5).range_settings()
        assert settings["forum_end"] == 5
        assert set(settings) == {"base_url", "forum_start", "forum_end", "topic_start", "topic_end"}
