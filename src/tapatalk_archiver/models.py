"""
Data models for the Tapatalk archiver.

These dataclasses hold what the extractors read from a single page, before
anything touches the database. A field left at ``None`` means the page did
not provide it; ``to_dict()`` drops such fields so persistence only writes
what was actually read.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Optional, Tuple

GUEST_ID = 0
GUEST_NAME = "Guest"


def _present(d: dict) -> dict:
    return {key: value for key, value in d.items() if value is not None}


@dataclass
class Pagination:
    """
    Totals reported by a listing's pagination widget.

    Attributes:
        items: Total number of items (posts or topics) in the listing
        pages: Number of pages the listing spans (at least 1)
    """
    items: int = 0
    pages: int = 1


@dataclass
class PostRecord:
    """
    A single post read from a topic page.

    Attributes:
        id: Post id (digits of the post element's id attribute)
        topic_id: Topic the post belongs to
        user_id: Author id, 0 for guests
        username: Author display name, "Guest" for guests
        date: Machine-readable post timestamp
        content: Body HTML with the trailing hide marker removed
    """
    id: int
    topic_id: int
    user_id: int = GUEST_ID
    username: str = GUEST_NAME
    date: Optional[datetime] = None
    content: str = ""

    def to_dict(self) -> dict:
        return _present(asdict(self))


@dataclass
class TopicSummary:
    """
    A topic row as listed on a forum page.

    The announcement flag comes from the listing container the row was
    found in, not from the row itself.
    """
    id: int
    forum_id: int
    name: str = ""
    user_id: int = GUEST_ID
    username: str = GUEST_NAME
    date: Optional[datetime] = None
    last_post_date: Optional[datetime] = None
    last_post_id: Optional[int] = None
    views: int = 0
    posts: int = 0
    pinned: bool = False
    locked: bool = False
    announcement: bool = False
    poll: bool = False

    def to_dict(self) -> dict:
        return _present(asdict(self))


@dataclass
class TopicDetail:
    """Header information from the first page of a topic."""
    id: int
    name: str
    forum_id: Optional[int] = None
    user_id: int = GUEST_ID
    username: str = GUEST_NAME
    posts: int = 0
    pages: int = 1

    def to_dict(self) -> dict:
        return _present(asdict(self))


@dataclass
class ForumRecord:
    """
    Forum metadata from the first page of a forum listing.

    ``parent_id`` is 0 for forums at the root of the board.
    """
    id: int
    name: str = ""
    description: str = ""
    parent_id: int = 0
    topic_count: int = 0
    pages: int = 1

    def to_dict(self) -> dict:
        return _present(asdict(self))


@dataclass
class UserProfile:
    """
    A member profile.

    Every labeled profile field is optional; fields missing from the page
    stay ``None`` and are left out of ``to_dict()``. ``groups`` is None when
    the page has no groups field, and a list of (group id, group name)
    pairs otherwise.

    Example:
        profile = UserProfile(id=42, name="alice", rank="Member",
                              groups=[(2, "Registered users")])
        profile.to_dict()
        # {'id': 42, 'name': 'alice', 'rank': 'Member',
        #  'groups': [(2, 'Registered users')]}
    """
    id: int
    name: Optional[str] = None
    rank: Optional[str] = None
    birthday: Optional[datetime] = None
    joined: Optional[datetime] = None
    active: Optional[datetime] = None
    post_count: Optional[int] = None
    signature: Optional[str] = None
    groups: Optional[List[Tuple[int, str]]] = None

    def to_dict(self) -> dict:
        d = _present(asdict(self))
        if self.groups is not None:
            d["groups"] = list(self.groups)
        return d

