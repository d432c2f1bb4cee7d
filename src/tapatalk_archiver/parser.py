"""
HTML extractors for Tapatalk-hosted phpBB pages.

Each extractor takes a parsed page and returns record dataclasses from
``models``. Lookups are best-effort: an optional element that is missing
leaves its field at a default instead of failing the whole record. An
extractor returns None when the page fails its initial lookup (no
headline, no forum title, no username), which callers treat the same as
a page that could not be fetched.

Selectors follow the markup Tapatalk serves for phpBB boards:

    topic page   div.viewtopic_wrapper.topic_data_for_js > ... div.postbody
    forum page   div.forumbg[.announcement] ul.topiclist li.row
    member page  span.edit-username-span, div.group div.cl-af
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag

from .errors import MissingContainerError
from .models import (
    GUEST_ID, GUEST_NAME,
    ForumRecord, Pagination, PostRecord, TopicDetail, TopicSummary, UserProfile
)
from .utils import first_int, parse_human_date, parse_iso_date, query_int, scale_count

logger = logging.getLogger(__name__)

# Pagination widget
PAGINATION = 'div.pagination'
PAGE_BUTTON = 'a.button'
_PAGE_OF_RE = re.compile(r'Page\s+\d+\s+of\s+(\d+)', re.IGNORECASE)

# Topic pages
POST_CONTAINER = 'div.viewtopic_wrapper.topic_data_for_js'
POST_BODY = 'div.postbody'
POST_CONTENT = 'div.content'
HIDE_MARKER = 'i.hide'
HEADLINE = 'h1[itemprop="headline"]'
BREADCRUMB_FORUM = 'span[data-forum-id]'
USERNAME_LINK = 'a.username, a.username-coloured'

# Forum pages
FORUM_TITLE = 'h2'
FORUM_DESCRIPTION = 'p.forum-description'
ANNOUNCEMENT_CONTAINER = 'div.forumbg.announcement'
NORMAL_CONTAINER = 'div.forumbg:not(.announcement)'
TOPIC_ROW = 'li.row'
TOPIC_LINK = 'a.topictitle'

# Icons marking topic flags in a listing row
FLAG_ICONS = {
    'pinned': '.icon-pinned, .fa-thumb-tack',
    'locked': '.icon-locked, .fa-lock',
    'poll': '.icon-poll, .fa-bar-chart',
}

# Member pages
PROFILE_USERNAME = 'span.edit-username-span'
PROFILE_RANK = 'span.profile-rank-name'
PROFILE_GROUP = 'div.group'
PROFILE_FIELD = 'div.cl-af'
PROFILE_TIMESPAN = 'span.timespan'
PROFILE_SIGNATURE = 'div.signature.standalone'

# Author pairs embedded in per-post script payloads
_SCRIPT_UID_RE = re.compile(
    r'''["']?(?:user_id|author_id|poster_id|uid)["']?\s*[:=]\s*["']?(\d+)'''
)
_SCRIPT_NAME_RE = re.compile(
    r'''["']?(?:username|author_name|poster_name)["']?\s*[:=]\s*["']([^"']*)["']'''
)


# -------------------------------------------------------
# SHARED HELPERS
# -------------------------------------------------------

def read_pagination(soup: BeautifulSoup) -> Pagination:
    """
    Read total item count and page count from the pagination widget.

    The widget text starts with the item total ("57 posts • Page 1 of 6")
    and links every reachable page as a button. No widget means a single
    page with an unknown item count.
    """
    widget = soup.select_one(PAGINATION)
    if widget is None:
        return Pagination()

    text = widget.get_text(" ", strip=True)
    items = first_int(text)

    page_numbers = [
        int(label)
        for label in (b.get_text(strip=True) for b in widget.select(PAGE_BUTTON))
        if label.isdigit()
    ]
    pages = max(page_numbers, default=1)

    match = _PAGE_OF_RE.search(text)
    if match:
        pages = max(pages, int(match.group(1)))

    return Pagination(items=items, pages=max(pages, 1))


def _breadcrumb_forum_ids(soup: BeautifulSoup) -> List[int]:
    ids = []
    for span in soup.select(BREADCRUMB_FORUM):
        forum_id = first_int(span.get('data-forum-id'), default=None)
        if forum_id is not None:
            ids.append(forum_id)
    return ids


def _text(element: Optional[Tag]) -> Optional[str]:
    return element.get_text(strip=True) if element is not None else None


# -------------------------------------------------------
# POSTS
# -------------------------------------------------------

def author_from_script(block: Tag) -> Optional[Tuple[int, str]]:
    """Read (user id, username) from a script payload inside ``block``."""
    for script in block.find_all('script'):
        payload = script.string or script.get_text()
        uid = _SCRIPT_UID_RE.search(payload)
        name = _SCRIPT_NAME_RE.search(payload)
        if uid and name:
            return int(uid.group(1)), name.group(1)
    return None


def author_from_profile(block: Tag) -> Optional[Tuple[int, str]]:
    """Read (user id, username) from the author's profile block."""
    dl = block.find('dl', attrs={'data-uid': True})
    if dl is None:
        return None
    user_id = first_int(dl.get('data-uid'), default=None)
    if user_id is None:
        return None
    name = dl.select_one('a[itemprop="name"]') or dl.select_one(USERNAME_LINK)
    return user_id, _text(name) or GUEST_NAME


AUTHOR_STRATEGIES = {
    'script': (author_from_script,),
    'profile': (author_from_profile,),
    'auto': (author_from_script, author_from_profile),
}


def read_author(block: Optional[Tag], mode: str = 'auto') -> Tuple[int, str]:
    """Resolve a post author, falling back to the guest account."""
    if block is not None:
        for strategy in AUTHOR_STRATEGIES[mode]:
            author = strategy(block)
            if author is not None:
                return author
    return GUEST_ID, GUEST_NAME


def clean_content(content: Optional[Tag]) -> str:
    """Serialize a post body without its trailing hide marker."""
    if content is None:
        return ""
    markers = content.select(HIDE_MARKER)
    if markers:
        markers[-1].decompose()
    else:
        logger.warning("Post body without hide marker")
    return content.decode_contents()


def extract_posts(soup: BeautifulSoup, topic_id: int, author_mode: str = 'auto') -> List[PostRecord]:
    """
    Extract every post on a topic page.

    Args:
        soup: Parsed topic page
        topic_id: Topic the page belongs to
        author_mode: ``script``, ``profile`` or ``auto``

    Returns:
        One PostRecord per post element, in page order

    Raises:
        MissingContainerError: The page has no post list container
    """
    container = soup.select_one(POST_CONTAINER)
    if container is None:
        raise MissingContainerError("post list", f"topic {topic_id}")

    posts = []
    for body in container.select(POST_BODY):
        post_id = first_int(body.get('id'), default=None)
        if post_id is None:
            logger.debug("Topic %d: post element without id", topic_id)
            continue

        user_id, username = read_author(body.parent, author_mode)

        date = None
        time_elem = body.find('time')
        if time_elem is not None:
            date = parse_iso_date(time_elem.get('datetime'))

        posts.append(PostRecord(
            id=post_id,
            topic_id=topic_id,
            user_id=user_id,
            username=username,
            date=date,
            content=clean_content(body.select_one(POST_CONTENT)),
        ))

    return posts


# -------------------------------------------------------
# TOPICS
# -------------------------------------------------------

def extract_topic_detail(soup: BeautifulSoup, topic_id: int) -> Optional[TopicDetail]:
    """
    Read forum, title, author and pagination totals from a topic's first page.

    Returns None when the page has no topic headline.
    """
    headline = soup.select_one(HEADLINE)
    if headline is None:
        return None

    forum_ids = _breadcrumb_forum_ids(soup)
    header = headline.parent

    user_id, username = GUEST_ID, GUEST_NAME
    dl = header.find('dl', attrs={'data-uid': True})
    if dl is not None:
        user_id = first_int(dl.get('data-uid'), default=GUEST_ID)
        username = _text(header.select_one(USERNAME_LINK)) or GUEST_NAME

    pagination = read_pagination(soup)
    posts = pagination.items or len(soup.select(POST_BODY))

    return TopicDetail(
        id=topic_id,
        forum_id=forum_ids[-1] if forum_ids else None,
        name=headline.get_text(strip=True),
        user_id=user_id,
        username=username,
        posts=posts,
        pages=pagination.pages,
    )


def _outside_lastpost(element: Tag) -> bool:
    return element.find_parent('dd', class_='lastpost') is None


def _topic_summary(row: Tag, forum_id: int, announcement: bool) -> Optional[TopicSummary]:
    link = row.select_one(TOPIC_LINK)
    if link is None:
        return None
    topic_id = query_int(link.get('href'), 't')
    if topic_id is None:
        return None

    summary = TopicSummary(
        id=topic_id,
        forum_id=forum_id,
        name=link.get_text(strip=True),
        announcement=announcement,
    )

    author = next((a for a in row.select(USERNAME_LINK) if _outside_lastpost(a)), None)
    if author is not None:
        author_id = query_int(author.get('href'), 'u')
        if author_id is not None:
            summary.user_id = author_id
            summary.username = author.get_text(strip=True)

    created = next((t for t in row.select('time[datetime]') if _outside_lastpost(t)), None)
    if created is not None:
        summary.date = parse_iso_date(created.get('datetime'))

    lastpost = row.select_one('dd.lastpost')
    if lastpost is not None:
        for a in lastpost.find_all('a', href=True):
            post_id = query_int(a['href'], 'p')
            if post_id is not None:
                summary.last_post_id = post_id
                break
        time_elem = lastpost.find('time')
        if time_elem is not None:
            summary.last_post_date = parse_iso_date(time_elem.get('datetime'))

    replies = row.select_one('dd.posts')
    if replies is not None:
        summary.posts = scale_count(replies.get_text(" ", strip=True)) + 1
    views = row.select_one('dd.views')
    if views is not None:
        summary.views = scale_count(views.get_text(" ", strip=True))

    for flag, selector in FLAG_ICONS.items():
        setattr(summary, flag, row.select_one(selector) is not None)

    return summary


def extract_topic_list(
    soup: BeautifulSoup,
    forum_id: int,
    container_selector: str,
    announcement: bool
) -> List[TopicSummary]:
    """Extract the topic rows of every listing container matching a selector."""
    topics = []
    for container in soup.select(container_selector):
        for row in container.select(TOPIC_ROW):
            summary = _topic_summary(row, forum_id, announcement)
            if summary is not None:
                topics.append(summary)
    return topics


def extract_topic_summaries(soup: BeautifulSoup, forum_id: int) -> List[TopicSummary]:
    """
    Extract all topics listed on a forum page.

    Announcements come first, followed by the normal topic list. Only
    rows from the announcement container are flagged as announcements.
    """
    return (
        extract_topic_list(soup, forum_id, ANNOUNCEMENT_CONTAINER, True)
        + extract_topic_list(soup, forum_id, NORMAL_CONTAINER, False)
    )


# -------------------------------------------------------
# FORUMS
# -------------------------------------------------------

def extract_forum(soup: BeautifulSoup, forum_id: int) -> Optional[ForumRecord]:
    """
    Read forum metadata from the first page of a forum listing.

    The parent is the deepest breadcrumb forum other than this one; a
    forum with no such breadcrumb sits at the root (parent 0). Returns
    None when the page has no forum title.
    """
    title = soup.select_one(FORUM_TITLE)
    if title is None:
        return None

    parents = [fid for fid in _breadcrumb_forum_ids(soup) if fid != forum_id]
    pagination = read_pagination(soup)
    topic_count = pagination.items or len(soup.select(f'div.forumbg {TOPIC_ROW}'))

    return ForumRecord(
        id=forum_id,
        name=title.get_text(strip=True),
        description=_text(soup.select_one(FORUM_DESCRIPTION)) or "",
        parent_id=parents[-1] if parents else 0,
        topic_count=topic_count,
        pages=pagination.pages,
    )


# -------------------------------------------------------
# MEMBERS
# -------------------------------------------------------

def _profile_fields(soup: BeautifulSoup) -> Dict[str, Tag]:
    """Map lowercased field labels to their profile rows."""
    groups = soup.select(PROFILE_GROUP)
    if not groups:
        return {}
    block = groups[1] if len(groups) > 1 else groups[0]

    fields = {}
    for row in block.select(PROFILE_FIELD):
        children = [
            c for c in row.children
            if not (isinstance(c, NavigableString) and not c.strip())
        ]
        if not children:
            continue
        label = children[0].get_text() if isinstance(children[0], Tag) else str(children[0])
        label = label.strip().rstrip(':').strip().lower()
        fields.setdefault(label, row)
    return fields


def _field_value(row: Tag) -> str:
    children = [
        c for c in row.children
        if not (isinstance(c, NavigableString) and not c.strip())
    ]
    if len(children) < 2:
        return ""
    value = children[1]
    return value.get_text(" ", strip=True) if isinstance(value, Tag) else str(value).strip()


def _timespan(row: Tag) -> Optional[str]:
    span = row.select_one(PROFILE_TIMESPAN)
    if span is not None and span.get('title'):
        return span['title']
    return _field_value(row) or None


def extract_user(soup: BeautifulSoup, user_id: int) -> Optional[UserProfile]:
    """
    Extract a member profile.

    Labeled fields (birthday, joined, last active, total posts, groups)
    are matched case-insensitively and each one is optional. Returns None
    when the page shows no username.
    """
    username = soup.select_one(PROFILE_USERNAME)
    if username is None:
        return None

    profile = UserProfile(
        id=user_id,
        name=username.get('data-origin-name') or username.get_text(strip=True),
        rank=_text(soup.select_one(PROFILE_RANK)),
    )

    fields = _profile_fields(soup)

    if 'birthday' in fields:
        profile.birthday = parse_human_date(_field_value(fields['birthday']), dayfirst=True)
    if 'joined' in fields:
        profile.joined = parse_human_date(_timespan(fields['joined']))
    if 'last active' in fields:
        profile.active = parse_human_date(_timespan(fields['last active']))
    if 'total posts' in fields:
        row = fields['total posts']
        link = row.find('a')
        text = _text(link) if link else _field_value(row)
        profile.post_count = first_int(text.replace(',', ''), default=None)
    if 'groups' in fields:
        profile.groups = []
        for option in fields['groups'].find_all('option'):
            group_id = first_int(option.get('value'), default=None)
            if group_id is not None:
                profile.groups.append((group_id, option.get_text(strip=True)))

    signature = soup.select_one(PROFILE_SIGNATURE)
    if signature is not None:
        profile.signature = signature.decode_contents()

    return profile
