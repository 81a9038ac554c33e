"""Relational storage on SQLAlchemy.

Each operation opens its own session, commits on success and rolls back on
any error. Uniqueness of likes, connections, usernames and emails is backed
by database constraints, so concurrent writers cannot create duplicates.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from saini_connect import models, schemas
from saini_connect.database import create_session_factory, init_db
from saini_connect.errors import ConstraintViolationError, NotFoundError
from saini_connect.storage.base import (
    Storage,
    as_naive_utc,
    canonical_pair,
    user_patch,
    utcnow,
)

logger = logging.getLogger(__name__)


class DatabaseStorage(Storage):
    def __init__(self, engine: Engine, create_tables: bool = True):
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        if create_tables:
            init_db(engine)

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _flush(db: Session, message: str):
        try:
            db.flush()
        except IntegrityError as exc:
            raise ConstraintViolationError(message) from exc

    def close(self):
        self._engine.dispose()

    # =========== User Operations ===========

    @staticmethod
    def _check_user_unique(db: Session, username: Optional[str], email: Optional[str], exclude_id: int = None):
        if username is not None:
            query = db.query(models.User.id).filter(models.User.username_lower == username.lower())
            if exclude_id is not None:
                query = query.filter(models.User.id != exclude_id)
            if query.first() is not None:
                raise ConstraintViolationError(f"Username {username!r} is already taken")

        if email is not None:
            query = db.query(models.User.id).filter(models.User.email == email)
            if exclude_id is not None:
                query = query.filter(models.User.id != exclude_id)
            if query.first() is not None:
                raise ConstraintViolationError(f"Email {email!r} is already registered")

    def get_user(self, user_id: int) -> Optional[schemas.User]:
        with self._session() as db:
            user = db.query(models.User).filter(models.User.id == user_id).first()
            return schemas.User.model_validate(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[schemas.User]:
        with self._session() as db:
            user = db.query(models.User).filter(models.User.username_lower == username.lower()).first()
            return schemas.User.model_validate(user) if user else None

    def create_user(self, data: schemas.UserCreate) -> schemas.User:
        with self._session() as db:
            self._check_user_unique(db, data.username, data.email)
            user = models.User(join_date=utcnow(), username_lower=data.username.lower(), **data.model_dump())
            db.add(user)
            self._flush(db, f"Could not create user {data.username!r}")
            logger.debug("Created user %s (%s)", user.id, user.username)
            return schemas.User.model_validate(user)

    def update_user(self, user_id: int, data: schemas.UserUpdate) -> schemas.User:
        with self._session() as db:
            user = db.query(models.User).filter(models.User.id == user_id).first()
            if user is None:
                raise NotFoundError("User", user_id)

            patch = user_patch(data)
            self._check_user_unique(db, patch.get("username"), patch.get("email"), exclude_id=user_id)
            for field, value in patch.items():
                setattr(user, field, value)
            if "username" in patch:
                user.username_lower = patch["username"].lower()
            self._flush(db, f"Could not update user {user_id}")
            return schemas.User.model_validate(user)

    def get_all_users(self) -> List[schemas.User]:
        with self._session() as db:
            users = db.query(models.User).order_by(models.User.id).all()
            return [schemas.User.model_validate(user) for user in users]

    # =========== Post Operations ===========

    def create_post(self, data: schemas.PostCreate) -> schemas.Post:
        with self._session() as db:
            post = models.Post(created_at=utcnow(), **data.model_dump())
            db.add(post)
            self._flush(db, f"User with ID {data.user_id} does not exist")
            return schemas.Post.model_validate(post)

    def get_post(self, post_id: int) -> Optional[schemas.Post]:
        with self._session() as db:
            post = db.query(models.Post).filter(models.Post.id == post_id).first()
            return schemas.Post.model_validate(post) if post else None

    def get_all_posts(self) -> List[schemas.Post]:
        with self._session() as db:
            posts = db.query(models.Post).order_by(models.Post.created_at.desc(), models.Post.id.desc()).all()
            return [schemas.Post.model_validate(post) for post in posts]

    def get_posts_by_user_id(self, user_id: int) -> List[schemas.Post]:
        with self._session() as db:
            posts = (
                db.query(models.Post)
                .filter(models.Post.user_id == user_id)
                .order_by(models.Post.created_at.desc(), models.Post.id.desc())
                .all()
            )
            return [schemas.Post.model_validate(post) for post in posts]

    # =========== Comment Operations ===========

    def create_comment(self, data: schemas.CommentCreate) -> schemas.Comment:
        with self._session() as db:
            comment = models.Comment(created_at=utcnow(), **data.model_dump())
            db.add(comment)
            self._flush(db, f"Cannot comment on post {data.post_id} as user {data.user_id}")
            return schemas.Comment.model_validate(comment)

    def get_comment(self, comment_id: int) -> Optional[schemas.Comment]:
        with self._session() as db:
            comment = (
                db.query(models.Comment)
                .options(joinedload(models.Comment.user))
                .filter(models.Comment.id == comment_id)
                .first()
            )
            return schemas.Comment.model_validate(comment) if comment else None

    def get_comments_by_post_id(self, post_id: int) -> List[schemas.Comment]:
        with self._session() as db:
            comments = (
                db.query(models.Comment)
                .options(joinedload(models.Comment.user))
                .filter(models.Comment.post_id == post_id)
                .order_by(models.Comment.created_at, models.Comment.id)
                .all()
            )
            return [schemas.Comment.model_validate(comment) for comment in comments]

    # =========== Like Operations ===========

    @staticmethod
    def _find_like(db: Session, post_id: int, user_id: int) -> Optional[models.Like]:
        return db.query(models.Like).filter(models.Like.post_id == post_id, models.Like.user_id == user_id).first()

    def create_like(self, data: schemas.LikeCreate) -> schemas.Like:
        with self._session() as db:
            existing = self._find_like(db, data.post_id, data.user_id)
            if existing is not None:
                logger.info("User %s already liked post %s", data.user_id, data.post_id)
                return schemas.Like.model_validate(existing)

            like = models.Like(created_at=utcnow(), **data.model_dump())
            db.add(like)
            try:
                db.flush()
            except IntegrityError as exc:
                # Either another request liked first or a foreign key is bad
                db.rollback()
                existing = self._find_like(db, data.post_id, data.user_id)
                if existing is None:
                    raise ConstraintViolationError(
                        f"Cannot like post {data.post_id} as user {data.user_id}"
                    ) from exc
                logger.info("Concurrent like of post %s by user %s collapsed", data.post_id, data.user_id)
                return schemas.Like.model_validate(existing)
            return schemas.Like.model_validate(like)

    def get_like(self, like_id: int) -> Optional[schemas.Like]:
        with self._session() as db:
            like = db.query(models.Like).filter(models.Like.id == like_id).first()
            return schemas.Like.model_validate(like) if like else None

    def get_likes_by_post_id(self, post_id: int) -> List[schemas.Like]:
        with self._session() as db:
            likes = db.query(models.Like).filter(models.Like.post_id == post_id).order_by(models.Like.id).all()
            return [schemas.Like.model_validate(like) for like in likes]

    def get_like_count_by_post_id(self, post_id: int) -> int:
        with self._session() as db:
            return db.query(func.count(models.Like.id)).filter(models.Like.post_id == post_id).scalar()

    def check_user_liked_post(self, post_id: int, user_id: int) -> bool:
        with self._session() as db:
            return self._find_like(db, post_id, user_id) is not None

    def delete_like(self, post_id: int, user_id: int) -> None:
        with self._session() as db:
            db.query(models.Like).filter(
                models.Like.post_id == post_id, models.Like.user_id == user_id
            ).delete(synchronize_session=False)

    # =========== Event Operations ===========

    def create_event(self, data: schemas.EventCreate) -> schemas.Event:
        with self._session() as db:
            values = data.model_dump()
            values["date"] = as_naive_utc(data.date)
            values["end_date"] = as_naive_utc(data.end_date)
            event = models.Event(created_at=utcnow(), **values)
            db.add(event)
            self._flush(db, f"User with ID {data.created_by} does not exist")
            return schemas.Event.model_validate(event)

    def get_event(self, event_id: int) -> Optional[schemas.Event]:
        with self._session() as db:
            event = db.query(models.Event).filter(models.Event.id == event_id).first()
            return schemas.Event.model_validate(event) if event else None

    def get_all_events(self) -> List[schemas.Event]:
        with self._session() as db:
            events = db.query(models.Event).order_by(models.Event.date, models.Event.id).all()
            return [schemas.Event.model_validate(event) for event in events]

    def get_upcoming_events(self, now: Optional[datetime] = None) -> List[schemas.Event]:
        now = as_naive_utc(now) if now is not None else utcnow()
        with self._session() as db:
            events = (
                db.query(models.Event)
                .filter(models.Event.date > now)
                .order_by(models.Event.date, models.Event.id)
                .all()
            )
            return [schemas.Event.model_validate(event) for event in events]

    # =========== Group Operations ===========

    def create_group(self, data: schemas.GroupCreate) -> schemas.Group:
        with self._session() as db:
            now = utcnow()
            group = models.Group(created_at=now, member_count=1, **data.model_dump())
            db.add(group)
            self._flush(db, f"User with ID {data.created_by} does not exist")

            db.add(models.GroupMember(group_id=group.id, user_id=data.created_by, role="admin", joined_at=now))
            self._flush(db, f"Could not enrol creator of group {group.id}")
            return schemas.Group.model_validate(group)

    def get_group(self, group_id: int) -> Optional[schemas.Group]:
        with self._session() as db:
            group = db.query(models.Group).filter(models.Group.id == group_id).first()
            return schemas.Group.model_validate(group) if group else None

    def get_all_groups(self) -> List[schemas.Group]:
        with self._session() as db:
            groups = db.query(models.Group).order_by(models.Group.id).all()
            return [schemas.Group.model_validate(group) for group in groups]

    # =========== Group Member Operations ===========

    def add_group_member(self, data: schemas.GroupMemberCreate) -> schemas.GroupMember:
        with self._session() as db:
            if db.query(models.Group.id).filter(models.Group.id == data.group_id).first() is None:
                raise NotFoundError("Group", data.group_id)

            member = models.GroupMember(joined_at=utcnow(), **data.model_dump())
            db.add(member)
            self._flush(db, f"User with ID {data.user_id} does not exist")

            # Increment in SQL so concurrent joins cannot lose an update
            db.query(models.Group).filter(models.Group.id == data.group_id).update(
                {models.Group.member_count: models.Group.member_count + 1},
                synchronize_session=False,
            )
            return schemas.GroupMember.model_validate(member)

    def get_group_members(self, group_id: int) -> List[schemas.GroupMember]:
        with self._session() as db:
            members = (
                db.query(models.GroupMember)
                .filter(models.GroupMember.group_id == group_id)
                .order_by(models.GroupMember.id)
                .all()
            )
            return [schemas.GroupMember.model_validate(member) for member in members]

    # =========== Connection Operations ===========

    @staticmethod
    def _find_connection(db: Session, pair) -> Optional[models.Connection]:
        low, high = pair
        return (
            db.query(models.Connection)
            .filter(models.Connection.user_low_id == low, models.Connection.user_high_id == high)
            .first()
        )

    def create_connection(self, data: schemas.ConnectionCreate) -> schemas.Connection:
        pair = canonical_pair(data.requester_id, data.addressee_id)
        with self._session() as db:
            existing = self._find_connection(db, pair)
            if existing is not None:
                logger.info("Connection between users %s and %s already exists", *pair)
                return schemas.Connection.model_validate(existing)

            connection = models.Connection(
                created_at=utcnow(),
                user_low_id=pair[0],
                user_high_id=pair[1],
                **data.model_dump(),
            )
            db.add(connection)
            try:
                db.flush()
            except IntegrityError as exc:
                db.rollback()
                existing = self._find_connection(db, pair)
                if existing is None:
                    raise ConstraintViolationError(
                        f"Cannot connect users {data.requester_id} and {data.addressee_id}"
                    ) from exc
                logger.info("Concurrent connection request between users %s and %s collapsed", *pair)
                return schemas.Connection.model_validate(existing)
            return schemas.Connection.model_validate(connection)

    def get_connection(self, connection_id: int) -> Optional[schemas.Connection]:
        with self._session() as db:
            connection = db.query(models.Connection).filter(models.Connection.id == connection_id).first()
            return schemas.Connection.model_validate(connection) if connection else None

    def get_user_connections(self, user_id: int) -> List[schemas.Connection]:
        with self._session() as db:
            connections = (
                db.query(models.Connection)
                .filter(
                    or_(
                        models.Connection.requester_id == user_id,
                        models.Connection.addressee_id == user_id,
                    )
                )
                .order_by(models.Connection.id)
                .all()
            )
            return [schemas.Connection.model_validate(connection) for connection in connections]

    def update_connection_status(self, connection_id: int, status: str) -> schemas.Connection:
        with self._session() as db:
            connection = db.query(models.Connection).filter(models.Connection.id == connection_id).first()
            if connection is None:
                raise NotFoundError("Connection", connection_id)

            connection.status = status
            db.flush()
            return schemas.Connection.model_validate(connection)
