"""In-process storage backed by ordered dicts.

State lives only as long as the ``MemStorage`` instance. Every public method
takes the instance lock, so duplicate checks and member-count updates cannot
interleave with another thread's writes.
"""

import itertools
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from saini_connect import schemas
from saini_connect.errors import ConstraintViolationError, NotFoundError
from saini_connect.storage.base import (
    Storage,
    as_naive_utc,
    canonical_pair,
    user_patch,
    utcnow,
)

logger = logging.getLogger(__name__)


def _copy(record):
    return record.model_copy(deep=True) if record is not None else None


class MemStorage(Storage):
    def __init__(self):
        self._lock = threading.RLock()

        self._users: Dict[int, schemas.User] = {}
        self._posts: Dict[int, schemas.Post] = {}
        self._comments: Dict[int, schemas.Comment] = {}
        self._likes: Dict[int, schemas.Like] = {}
        self._events: Dict[int, schemas.Event] = {}
        self._groups: Dict[int, schemas.Group] = {}
        self._group_members: Dict[int, schemas.GroupMember] = {}
        self._connections: Dict[int, schemas.Connection] = {}

        self._user_ids = itertools.count(1)
        self._post_ids = itertools.count(1)
        self._comment_ids = itertools.count(1)
        self._like_ids = itertools.count(1)
        self._event_ids = itertools.count(1)
        self._group_ids = itertools.count(1)
        self._group_member_ids = itertools.count(1)
        self._connection_ids = itertools.count(1)

    def _require_user(self, user_id: int):
        if user_id not in self._users:
            raise ConstraintViolationError(f"User with ID {user_id} does not exist")

    def _require_post(self, post_id: int):
        if post_id not in self._posts:
            raise ConstraintViolationError(f"Post with ID {post_id} does not exist")

    def _check_user_unique(self, username: Optional[str], email: Optional[str], exclude_id: int = None):
        for user in self._users.values():
            if user.id == exclude_id:
                continue
            if username is not None and user.username.lower() == username.lower():
                raise ConstraintViolationError(f"Username {username!r} is already taken")
            if email is not None and user.email == email:
                raise ConstraintViolationError(f"Email {email!r} is already registered")

    # =========== User Operations ===========

    def get_user(self, user_id: int) -> Optional[schemas.User]:
        with self._lock:
            return _copy(self._users.get(user_id))

    def get_user_by_username(self, username: str) -> Optional[schemas.User]:
        with self._lock:
            for user in self._users.values():
                if user.username.lower() == username.lower():
                    return _copy(user)
            return None

    def create_user(self, data: schemas.UserCreate) -> schemas.User:
        with self._lock:
            self._check_user_unique(data.username, data.email)
            user = schemas.User(id=next(self._user_ids), join_date=utcnow(), **data.model_dump())
            self._users[user.id] = user
            logger.debug("Created user %s (%s)", user.id, user.username)
            return _copy(user)

    def update_user(self, user_id: int, data: schemas.UserUpdate) -> schemas.User:
        with self._lock:
            existing = self._users.get(user_id)
            if existing is None:
                raise NotFoundError("User", user_id)

            patch = user_patch(data)
            self._check_user_unique(patch.get("username"), patch.get("email"), exclude_id=user_id)
            updated = existing.model_copy(update=patch)
            self._users[user_id] = updated
            return _copy(updated)

    def get_all_users(self) -> List[schemas.User]:
        with self._lock:
            return [_copy(user) for user in self._users.values()]

    # =========== Post Operations ===========

    def create_post(self, data: schemas.PostCreate) -> schemas.Post:
        with self._lock:
            self._require_user(data.user_id)
            post = schemas.Post(id=next(self._post_ids), created_at=utcnow(), **data.model_dump())
            self._posts[post.id] = post
            return _copy(post)

    def get_post(self, post_id: int) -> Optional[schemas.Post]:
        with self._lock:
            return _copy(self._posts.get(post_id))

    def get_all_posts(self) -> List[schemas.Post]:
        with self._lock:
            posts = sorted(self._posts.values(), key=lambda p: (p.created_at, p.id), reverse=True)
            return [_copy(post) for post in posts]

    def get_posts_by_user_id(self, user_id: int) -> List[schemas.Post]:
        with self._lock:
            posts = [post for post in self._posts.values() if post.user_id == user_id]
            posts.sort(key=lambda p: (p.created_at, p.id), reverse=True)
            return [_copy(post) for post in posts]

    # =========== Comment Operations ===========

    def create_comment(self, data: schemas.CommentCreate) -> schemas.Comment:
        with self._lock:
            self._require_post(data.post_id)
            self._require_user(data.user_id)
            if data.parent_id is not None and data.parent_id not in self._comments:
                raise ConstraintViolationError(f"Comment with ID {data.parent_id} does not exist")

            comment = schemas.Comment(id=next(self._comment_ids), created_at=utcnow(), **data.model_dump())
            self._comments[comment.id] = comment
            return self._with_author(comment)

    def _with_author(self, comment: schemas.Comment) -> schemas.Comment:
        author = self._users.get(comment.user_id)
        summary = schemas.UserSummary.model_validate(author.model_dump()) if author else None
        return comment.model_copy(update={"user": summary}, deep=True)

    def get_comment(self, comment_id: int) -> Optional[schemas.Comment]:
        with self._lock:
            comment = self._comments.get(comment_id)
            return self._with_author(comment) if comment is not None else None

    def get_comments_by_post_id(self, post_id: int) -> List[schemas.Comment]:
        with self._lock:
            comments = [c for c in self._comments.values() if c.post_id == post_id]
            comments.sort(key=lambda c: (c.created_at, c.id))
            return [self._with_author(comment) for comment in comments]

    # =========== Like Operations ===========

    def _find_like(self, post_id: int, user_id: int) -> Optional[schemas.Like]:
        for like in self._likes.values():
            if like.post_id == post_id and like.user_id == user_id:
                return like
        return None

    def create_like(self, data: schemas.LikeCreate) -> schemas.Like:
        with self._lock:
            existing = self._find_like(data.post_id, data.user_id)
            if existing is not None:
                logger.info("User %s already liked post %s", data.user_id, data.post_id)
                return _copy(existing)

            self._require_post(data.post_id)
            self._require_user(data.user_id)
            like = schemas.Like(id=next(self._like_ids), created_at=utcnow(), **data.model_dump())
            self._likes[like.id] = like
            return _copy(like)

    def get_like(self, like_id: int) -> Optional[schemas.Like]:
        with self._lock:
            return _copy(self._likes.get(like_id))

    def get_likes_by_post_id(self, post_id: int) -> List[schemas.Like]:
        with self._lock:
            return [_copy(like) for like in self._likes.values() if like.post_id == post_id]

    def get_like_count_by_post_id(self, post_id: int) -> int:
        with self._lock:
            return sum(1 for like in self._likes.values() if like.post_id == post_id)

    def check_user_liked_post(self, post_id: int, user_id: int) -> bool:
        with self._lock:
            return self._find_like(post_id, user_id) is not None

    def delete_like(self, post_id: int, user_id: int) -> None:
        with self._lock:
            like = self._find_like(post_id, user_id)
            if like is not None:
                del self._likes[like.id]

    # =========== Event Operations ===========

    def create_event(self, data: schemas.EventCreate) -> schemas.Event:
        with self._lock:
            self._require_user(data.created_by)
            values = data.model_dump()
            values["date"] = as_naive_utc(data.date)
            values["end_date"] = as_naive_utc(data.end_date)
            event = schemas.Event(id=next(self._event_ids), created_at=utcnow(), **values)
            self._events[event.id] = event
            return _copy(event)

    def get_event(self, event_id: int) -> Optional[schemas.Event]:
        with self._lock:
            return _copy(self._events.get(event_id))

    def get_all_events(self) -> List[schemas.Event]:
        with self._lock:
            events = sorted(self._events.values(), key=lambda e: (e.date, e.id))
            return [_copy(event) for event in events]

    def get_upcoming_events(self, now: Optional[datetime] = None) -> List[schemas.Event]:
        now = as_naive_utc(now) if now is not None else utcnow()
        with self._lock:
            events = [event for event in self._events.values() if event.date > now]
            events.sort(key=lambda e: (e.date, e.id))
            return [_copy(event) for event in events]

    # =========== Group Operations ===========

    def create_group(self, data: schemas.GroupCreate) -> schemas.Group:
        with self._lock:
            self._require_user(data.created_by)
            now = utcnow()
            group = schemas.Group(id=next(self._group_ids), created_at=now, member_count=1, **data.model_dump())
            creator = schemas.GroupMember(
                id=next(self._group_member_ids),
                group_id=group.id,
                user_id=data.created_by,
                role="admin",
                joined_at=now,
            )
            self._groups[group.id] = group
            self._group_members[creator.id] = creator
            return _copy(group)

    def get_group(self, group_id: int) -> Optional[schemas.Group]:
        with self._lock:
            return _copy(self._groups.get(group_id))

    def get_all_groups(self) -> List[schemas.Group]:
        with self._lock:
            return [_copy(group) for group in self._groups.values()]

    # =========== Group Member Operations ===========

    def add_group_member(self, data: schemas.GroupMemberCreate) -> schemas.GroupMember:
        with self._lock:
            group = self._groups.get(data.group_id)
            if group is None:
                raise NotFoundError("Group", data.group_id)
            self._require_user(data.user_id)

            member = schemas.GroupMember(id=next(self._group_member_ids), joined_at=utcnow(), **data.model_dump())
            self._group_members[member.id] = member
            self._groups[group.id] = group.model_copy(update={"member_count": group.member_count + 1})
            return _copy(member)

    def get_group_members(self, group_id: int) -> List[schemas.GroupMember]:
        with self._lock:
            return [_copy(m) for m in self._group_members.values() if m.group_id == group_id]

    # =========== Connection Operations ===========

    def create_connection(self, data: schemas.ConnectionCreate) -> schemas.Connection:
        with self._lock:
            pair = canonical_pair(data.requester_id, data.addressee_id)
            for connection in self._connections.values():
                if canonical_pair(connection.requester_id, connection.addressee_id) == pair:
                    logger.info("Connection between users %s and %s already exists", *pair)
                    return _copy(connection)

            self._require_user(data.requester_id)
            self._require_user(data.addressee_id)
            connection = schemas.Connection(id=next(self._connection_ids), created_at=utcnow(), **data.model_dump())
            self._connections[connection.id] = connection
            return _copy(connection)

    def get_connection(self, connection_id: int) -> Optional[schemas.Connection]:
        with self._lock:
            return _copy(self._connections.get(connection_id))

    def get_user_connections(self, user_id: int) -> List[schemas.Connection]:
        with self._lock:
            return [
                _copy(c) for c in self._connections.values()
                if c.requester_id == user_id or c.addressee_id == user_id
            ]

    def update_connection_status(self, connection_id: int, status: str) -> schemas.Connection:
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                raise NotFoundError("Connection", connection_id)

            updated = connection.model_copy(update={"status": status})
            self._connections[connection_id] = updated
            return _copy(updated)
