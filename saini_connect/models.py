from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from saini_connect.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    # Filled from str.lower(); SQLite lower() folds ASCII only
    username_lower = Column(String, nullable=False)
    password = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    profile_image = Column(String, nullable=True)
    cover_image = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    occupation = Column(String, nullable=True)
    join_date = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("username_lower", name="uq_users_username_lower"),
        {"sqlite_autoincrement": True},
    )


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    images = Column(JSON, nullable=False, default=list)
    visibility = Column(String, nullable=False, default="public")
    created_at = Column(DateTime, nullable=False, index=True)

    owner = relationship("User")
    comments = relationship("Comment", back_populates="post")
    likes = relationship("Like", back_populates="post")

    __table_args__ = {"sqlite_autoincrement": True}


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    parent_id = Column(Integer, ForeignKey("comments.id"), nullable=True)
    created_at = Column(DateTime, nullable=False)

    post = relationship("Post", back_populates="comments")
    user = relationship("User")

    __table_args__ = (
        Index("idx_comments_post_created", "post_id", "created_at"),
        {"sqlite_autoincrement": True},
    )


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(String, nullable=False, default="like")
    created_at = Column(DateTime, nullable=False)

    post = relationship("Post", back_populates="likes")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_like_post_user"),
        {"sqlite_autoincrement": True},
    )


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=True)
    image = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False)

    creator = relationship("User")

    __table_args__ = {"sqlite_autoincrement": True}


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False)
    member_count = Column(Integer, nullable=False, default=1)

    creator = relationship("User")
    members = relationship("GroupMember", back_populates="group")

    __table_args__ = {"sqlite_autoincrement": True}


class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(String, nullable=False, default="member")
    joined_at = Column(DateTime, nullable=False)

    group = relationship("Group", back_populates="members")
    user = relationship("User")

    __table_args__ = {"sqlite_autoincrement": True}


class Connection(Base):
    __tablename__ = "connections"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    addressee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False)

    # Canonical (smaller id, larger id) pair, so A->B and B->A collide
    user_low_id = Column(Integer, nullable=False)
    user_high_id = Column(Integer, nullable=False)

    requester = relationship("User", foreign_keys=[requester_id])
    addressee = relationship("User", foreign_keys=[addressee_id])

    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_connection_pair"),
        {"sqlite_autoincrement": True},
    )
