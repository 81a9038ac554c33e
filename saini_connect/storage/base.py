"""Storage contract shared by every backing store."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from saini_connect import schemas
from saini_connect.errors import ConstraintViolationError


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form both stores persist."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def canonical_pair(first_id: int, second_id: int):
    return (first_id, second_id) if first_id <= second_id else (second_id, first_id)


REQUIRED_USER_FIELDS = ("username", "password", "full_name", "email")


def user_patch(data: schemas.UserUpdate) -> dict:
    """Fields explicitly set on a partial user update."""
    patch = data.model_dump(exclude_unset=True)
    for field in REQUIRED_USER_FIELDS:
        if field in patch and patch[field] is None:
            raise ConstraintViolationError(f"User {field} cannot be empty")
    return patch


class Storage(ABC):
    """Create/read/update operations over users, posts, comments, likes,
    events, groups, group members and connections.

    Reads by id return ``None`` when the record does not exist. Updates of a
    missing record raise :class:`~saini_connect.errors.NotFoundError`.
    Writes that would duplicate a username or email, or that reference a
    record that does not exist, raise
    :class:`~saini_connect.errors.ConstraintViolationError`. Liking a post
    twice or requesting the same connection twice returns the existing record.
    """

    # Users

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[schemas.User]:
        """Return the user with this id."""

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[schemas.User]:
        """Return the user whose username matches, ignoring case."""

    @abstractmethod
    def create_user(self, data: schemas.UserCreate) -> schemas.User:
        """Insert a user; ``data.password`` must already be hashed."""

    @abstractmethod
    def update_user(self, user_id: int, data: schemas.UserUpdate) -> schemas.User:
        """Apply the fields set on ``data`` to an existing user."""

    @abstractmethod
    def get_all_users(self) -> List[schemas.User]:
        """Return every user in id order."""

    # Posts

    @abstractmethod
    def create_post(self, data: schemas.PostCreate) -> schemas.Post:
        """Insert a post."""

    @abstractmethod
    def get_post(self, post_id: int) -> Optional[schemas.Post]:
        """Return the post with this id."""

    @abstractmethod
    def get_all_posts(self) -> List[schemas.Post]:
        """Return every post, newest first."""

    @abstractmethod
    def get_posts_by_user_id(self, user_id: int) -> List[schemas.Post]:
        """Return one user's posts, newest first."""

    # Comments

    @abstractmethod
    def create_comment(self, data: schemas.CommentCreate) -> schemas.Comment:
        """Insert a comment."""

    @abstractmethod
    def get_comment(self, comment_id: int) -> Optional[schemas.Comment]:
        """Return the comment with this id."""

    @abstractmethod
    def get_comments_by_post_id(self, post_id: int) -> List[schemas.Comment]:
        """Return a post's comments oldest first, each with its author summary."""

    # Likes

    @abstractmethod
    def create_like(self, data: schemas.LikeCreate) -> schemas.Like:
        """Insert a like, or return the existing like for the same post and user."""

    @abstractmethod
    def get_like(self, like_id: int) -> Optional[schemas.Like]:
        """Return the like with this id."""

    @abstractmethod
    def get_likes_by_post_id(self, post_id: int) -> List[schemas.Like]:
        """Return a post's likes."""

    @abstractmethod
    def get_like_count_by_post_id(self, post_id: int) -> int:
        """Return how many likes a post has."""

    @abstractmethod
    def check_user_liked_post(self, post_id: int, user_id: int) -> bool:
        """Return whether the user has liked the post."""

    @abstractmethod
    def delete_like(self, post_id: int, user_id: int) -> None:
        """Remove the user's like from the post, if there is one."""

    # Events

    @abstractmethod
    def create_event(self, data: schemas.EventCreate) -> schemas.Event:
        """Insert an event."""

    @abstractmethod
    def get_event(self, event_id: int) -> Optional[schemas.Event]:
        """Return the event with this id."""

    @abstractmethod
    def get_all_events(self) -> List[schemas.Event]:
        """Return every event, earliest date first."""

    @abstractmethod
    def get_upcoming_events(self, now: Optional[datetime] = None) -> List[schemas.Event]:
        """Return events dated strictly after ``now``, earliest first."""

    # Groups

    @abstractmethod
    def create_group(self, data: schemas.GroupCreate) -> schemas.Group:
        """Insert a group and enrol its creator as admin."""

    @abstractmethod
    def get_group(self, group_id: int) -> Optional[schemas.Group]:
        """Return the group with this id."""

    @abstractmethod
    def get_all_groups(self) -> List[schemas.Group]:
        """Return every group in id order."""

    # Group members

    @abstractmethod
    def add_group_member(self, data: schemas.GroupMemberCreate) -> schemas.GroupMember:
        """Insert a membership and bump the group's member count."""

    @abstractmethod
    def get_group_members(self, group_id: int) -> List[schemas.GroupMember]:
        """Return a group's memberships."""

    # Connections

    @abstractmethod
    def create_connection(self, data: schemas.ConnectionCreate) -> schemas.Connection:
        """Insert a connection, or return the existing one for the same pair of users."""

    @abstractmethod
    def get_connection(self, connection_id: int) -> Optional[schemas.Connection]:
        """Return the connection with this id."""

    @abstractmethod
    def get_user_connections(self, user_id: int) -> List[schemas.Connection]:
        """Return connections the user requested or received."""

    @abstractmethod
    def update_connection_status(self, connection_id: int, status: str) -> schemas.Connection:
        """Set a connection's status."""

    def close(self):
        """Release resources held by the store."""
