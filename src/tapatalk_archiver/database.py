"""
SQLite persistence for archived forum data, using SQLAlchemy.

Six content tables mirror the board itself (forums, topics, posts, users,
groups and the users_groups join table) plus a ``configs`` key/value table
recording the scrape settings used at setup time.

Rows are keyed by the board's own numeric ids. Every save is an upsert:
the row is created when absent and its fields are overwritten otherwise.
Rows referenced through a foreign key are created on demand as stubs
(id only) by ``Archive.ensure``, so a topic can point at a user or forum
before that user or forum has been scraped. Later passes fill the stubs in.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Type

import orjson
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text,
    create_engine, event, select, func
)
from sqlalchemy.orm import DeclarativeBase, Session, relationship, sessionmaker

from .models import (
    GUEST_ID, GUEST_NAME,
    ForumRecord, PostRecord, TopicDetail, TopicSummary, UserProfile
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models using modern declarative style."""
    pass


users_groups = Table(
    "users_groups",
    Base.metadata,
    Column("user_id", ForeignKey("users.id"), primary_key=True),
    Column("group_id", ForeignKey("groups.id"), primary_key=True),
)


class Forum(Base):
    """A forum; ``parent_id`` 0 marks a forum at the board root."""
    __tablename__ = "forums"

    id: int = Column(Integer, primary_key=True, autoincrement=False)
    parent_id: int = Column(Integer, nullable=False, default=0, index=True)
    name: str = Column(String)
    description: str = Column(String)
    topic_count: int = Column(Integer, default=0)

    topics = relationship("Topic", back_populates="forum")

    def __repr__(self) -> str:
        return f"Forum(id={self.id!r}, name={self.name!r}, parent_id={self.parent_id!r})"


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, autoincrement=False)
    name: str = Column(String)
    rank: str = Column(String)
    birthday = Column(DateTime)
    joined = Column(DateTime)
    active = Column(DateTime)
    post_count: int = Column(Integer)
    signature: str = Column(Text)

    topics = relationship("Topic", back_populates="user")
    posts = relationship("Post", back_populates="user")
    groups = relationship("Group", secondary=users_groups, back_populates="users")

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r})"


class Group(Base):
    __tablename__ = "groups"
    __table_args__ = {"quote": True}

    id: int = Column(Integer, primary_key=True, autoincrement=False)
    name: str = Column(String)

    users = relationship("User", secondary=users_groups, back_populates="groups")


class Topic(Base):
    """A topic; ``last_post_id`` is informational and not a foreign key."""
    __tablename__ = "topics"

    id: int = Column(Integer, primary_key=True, autoincrement=False)
    forum_id: int = Column(Integer, ForeignKey("forums.id"), index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), index=True)
    name: str = Column(String)
    date = Column(DateTime)
    last_post_date = Column(DateTime)
    views: int = Column(Integer, default=0)
    posts: int = Column(Integer, default=0)
    last_post_id: int = Column(Integer)
    pinned: bool = Column(Boolean, default=False)
    locked: bool = Column(Boolean, default=False)
    announcement: bool = Column(Boolean, default=False)
    poll: bool = Column(Boolean, default=False)

    forum = relationship("Forum", back_populates="topics")
    user = relationship("User", back_populates="topics")
    post_rows = relationship("Post", back_populates="topic")

    def __repr__(self) -> str:
        return f"Topic(id={self.id!r}, name={self.name!r}, forum_id={self.forum_id!r})"


class Post(Base):
    __tablename__ = "posts"

    id: int = Column(Integer, primary_key=True, autoincrement=False)
    topic_id: int = Column(Integer, ForeignKey("topics.id"), index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), index=True)
    date = Column(DateTime)
    content: str = Column(Text)

    topic = relationship("Topic", back_populates="post_rows")
    user = relationship("User", back_populates="posts")


class Config(Base):
    """Free-form key/value settings; values are JSON text."""
    __tablename__ = "configs"

    key: str = Column(String, primary_key=True)
    value: str = Column(Text)


MODELS = {
    "forum": Forum,
    "topic": Topic,
    "post": Post,
    "user": User,
    "group": Group,
}

# Columns an upsert may overwrite, per record type
FORUM_FIELDS = ("name", "description", "parent_id", "topic_count")
TOPIC_SUMMARY_FIELDS = (
    "forum_id", "user_id", "name", "date", "last_post_date", "last_post_id",
    "views", "posts", "pinned", "locked", "announcement", "poll",
)
TOPIC_DETAIL_FIELDS = ("forum_id", "user_id", "name", "posts")
POST_FIELDS = ("topic_id", "user_id", "date", "content")
USER_FIELDS = ("name", "rank", "birthday", "joined", "active", "post_count", "signature")


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _assign(row, values: dict, fields: Iterable[str]) -> None:
    for name in fields:
        if name in values:
            setattr(row, name, values[name])


class Archive:
    """
    Manages the SQLite archive database.

    Usage:
        archive = Archive("tapa.sqlite")
        archive.setup({"forum_start": 1, "forum_end": 66})

        archive.save_forum(forum_record)
        archive.save_topic_summaries(topic_summaries)
        archive.save_posts(post_records)
        archive.save_user_profile(profile)
    """

    def __init__(self, db_path: str = "tapa.sqlite"):
        """
        Create the engine and session factory.

        Nothing is written to disk until ``setup()`` or the first save.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.engine = create_engine(f"sqlite:///{self.db_path}", echo=False)
        event.listen(self.engine, "connect", _enable_foreign_keys)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False
        )

    # -------------------------------------------------------
    # SCHEMA & CONFIG
    # -------------------------------------------------------

    def setup(self, settings: Optional[Dict[str, object]] = None) -> bool:
        """
        Create the schema if the database file does not exist yet.

        Args:
            settings: Key/value pairs recorded in the configs table

        Returns:
            True if the database was created, False if it already existed
        """
        if self.db_path.is_file():
            logger.debug("Database %s exists, skipping setup", self.db_path)
            return False

        Base.metadata.create_all(self.engine)
        logger.info("Created database %s", self.db_path)

        for key, value in (settings or {}).items():
            self.set_config(key, value)
        return True

    def set_config(self, key: str, value) -> None:
        with self.SessionLocal() as session:
            row = session.get(Config, key)
            encoded = orjson.dumps(value).decode()
            if row is None:
                session.add(Config(key=key, value=encoded))
            else:
                row.value = encoded
            session.commit()

    def get_config(self, key: str, default=None):
        with self.SessionLocal() as session:
            row = session.get(Config, key)
            if row is None:
                return default
            return orjson.loads(row.value)

    # -------------------------------------------------------
    # STUB CREATION
    # -------------------------------------------------------

    def ensure(self, session: Session, model: Type[Base], row_id: int):
        """
        Return the row with ``row_id``, creating an id-only stub if absent.

        The stub is flushed immediately so foreign keys pointing at it are
        satisfiable within the same session. The guest account (user id 0)
        is created with its display name.
        """
        row = session.get(model, row_id)
        if row is None:
            row = model(id=row_id)
            if model is User and row_id == GUEST_ID:
                row.name = GUEST_NAME
            session.add(row)
            session.flush()
            logger.debug("Created stub %s %d", model.__tablename__, row_id)
        return row

    # -------------------------------------------------------
    # UPSERTS
    # -------------------------------------------------------

    def _ensure_author(self, session: Session, user_id: int, username: Optional[str]) -> User:
        user = self.ensure(session, User, user_id)
        if username and not user.name:
            user.name = username
        return user

    def _upsert(self, session: Session, model: Type[Base], values: dict, fields: Iterable[str]):
        row = self.ensure(session, model, values["id"])
        _assign(row, values, fields)
        return row

    def save_forum(self, record: ForumRecord) -> None:
        """Upsert a forum, creating its parent as a stub when needed."""
        values = record.to_dict()
        with self.SessionLocal() as session:
            try:
                if record.parent_id:
                    self.ensure(session, Forum, record.parent_id)
                self._upsert(session, Forum, values, FORUM_FIELDS)
                session.commit()
            except Exception:
                session.rollback()
                raise

    def save_topic_summaries(self, records: List[TopicSummary]) -> None:
        """Upsert topics listed on a forum page."""
        with self.SessionLocal() as session:
            try:
                for record in records:
                    self.ensure(session, Forum, record.forum_id)
                    self._ensure_author(session, record.user_id, record.username)
                    self._upsert(session, Topic, record.to_dict(), TOPIC_SUMMARY_FIELDS)
                session.commit()
            except Exception:
                session.rollback()
                raise

    def save_topic_detail(self, record: TopicDetail) -> None:
        """Upsert a topic from its own first page."""
        with self.SessionLocal() as session:
            try:
                if record.forum_id:
                    self.ensure(session, Forum, record.forum_id)
                self._ensure_author(session, record.user_id, record.username)
                self._upsert(session, Topic, record.to_dict(), TOPIC_DETAIL_FIELDS)
                session.commit()
            except Exception:
                session.rollback()
                raise

    def save_posts(self, records: List[PostRecord]) -> None:
        """Upsert the posts of one topic page."""
        with self.SessionLocal() as session:
            try:
                for record in records:
                    self.ensure(session, Topic, record.topic_id)
                    self._ensure_author(session, record.user_id, record.username)
                    self._upsert(session, Post, record.to_dict(), POST_FIELDS)
                session.commit()
            except Exception:
                session.rollback()
                raise

    def save_user_profile(self, profile: UserProfile) -> None:
        """
        Fill in a user's profile.

        Only fields the profile page provided are written. When the page
        listed groups, the user's memberships are replaced by that list.
        """
        values = profile.to_dict()
        with self.SessionLocal() as session:
            try:
                user = self._upsert(session, User, values, USER_FIELDS)
                if profile.groups is not None:
                    groups = []
                    for group_id, group_name in profile.groups:
                        group = self.ensure(session, Group, group_id)
                        if group_name:
                            group.name = group_name
                        groups.append(group)
                    user.groups = groups
                session.commit()
            except Exception:
                session.rollback()
                raise

    # -------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------

    def user_ids(self, include_guest: bool = False) -> List[int]:
        """Ids of every user known to the archive, ascending."""
        stmt = select(User.id).order_by(User.id)
        if not include_guest:
            stmt = stmt.where(User.id != GUEST_ID)
        with self.SessionLocal() as session:
            return list(session.scalars(stmt))

    def get(self, kind: str, row_id: int):
        """
        Load one row by kind ("forum", "topic", "post", "user", "group").

        Returned rows are detached; relationships other than a user's
        groups are not loaded.
        """
        model = MODELS[kind]
        with self.SessionLocal(expire_on_commit=False) as session:
            row = session.get(model, row_id)
            if row is not None and model is User:
                list(row.groups)
            return row

    def counts(self) -> Dict[str, int]:
        """Number of rows per table."""
        with self.SessionLocal() as session:
            counts = {
                model.__tablename__: session.scalar(select(func.count()).select_from(model))
                for model in MODELS.values()
            }
            counts["users_groups"] = session.scalar(
                select(func.count()).select_from(users_groups)
            )
            return counts
