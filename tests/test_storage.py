from datetime import datetime, timedelta, timezone

import pytest

from saini_connect import schemas
from saini_connect.errors import ConstraintViolationError, NotFoundError
from saini_connect.storage.base import utcnow


def make_post(storage, user, content="Hello Saini community"):
    return storage.create_post(schemas.PostCreate(user_id=user.id, content=content))


def make_event(storage, user, date, title="Meetup"):
    return storage.create_event(schemas.EventCreate(
        title=title,
        description="Community gathering",
        location="Jaipur",
        date=date,
        created_by=user.id,
    ))


# Users

def test_create_and_get_user(storage, make_user):
    user = make_user("anjali", bio="Engineer", location="Delhi, India")

    assert user.id == 1
    assert user.join_date is not None
    fetched = storage.get_user(user.id)
    assert fetched == user
    assert fetched.bio == "Engineer"


def test_get_missing_user_returns_none(storage):
    assert storage.get_user(42) is None
    assert storage.get_user_by_username("nobody") is None


def test_get_user_by_username_ignores_case(storage, make_user):
    user = make_user("Rajesh")

    assert storage.get_user_by_username("rajesh").id == user.id
    assert storage.get_user_by_username("RAJESH").id == user.id


def test_duplicate_username_is_rejected(storage, make_user):
    make_user("priya")

    with pytest.raises(ConstraintViolationError):
        make_user("PRIYA", email="other@sainiconnect.com")
    assert len(storage.get_all_users()) == 1


def test_username_case_folding_covers_non_ascii(storage, make_user):
    user = make_user("Élan", email="elan@sainiconnect.com")

    assert storage.get_user_by_username("élan").id == user.id
    with pytest.raises(ConstraintViolationError):
        make_user("élan", email="elan2@sainiconnect.com")
    assert [u.username for u in storage.get_all_users()] == ["Élan"]


def test_renamed_user_is_found_by_new_name(storage, make_user):
    user = make_user("meera")

    storage.update_user(user.id, schemas.UserUpdate(username="Ömer"))

    assert storage.get_user_by_username("ömer").id == user.id
    assert storage.get_user_by_username("meera") is None


def test_duplicate_email_is_rejected(storage, make_user):
    make_user("priya", email="priya@sainiconnect.com")

    with pytest.raises(ConstraintViolationError):
        make_user("vikram", email="priya@sainiconnect.com")


def test_update_user_applies_only_given_fields(storage, make_user):
    user = make_user("meera", bio="Doctor")

    updated = storage.update_user(user.id, schemas.UserUpdate(location="Chennai, India"))

    assert updated.location == "Chennai, India"
    assert updated.bio == "Doctor"
    assert updated.join_date == user.join_date
    assert storage.get_user(user.id).location == "Chennai, India"


def test_update_user_rejects_taken_username(storage, make_user):
    make_user("vikram")
    meera = make_user("meera")

    with pytest.raises(ConstraintViolationError):
        storage.update_user(meera.id, schemas.UserUpdate(username="Vikram"))
    assert storage.get_user(meera.id).username == "meera"


def test_update_user_allows_keeping_own_username(storage, make_user):
    meera = make_user("meera")

    updated = storage.update_user(meera.id, schemas.UserUpdate(username="Meera", bio="hi"))

    assert updated.username == "Meera"


def test_update_user_rejects_clearing_required_field(storage, make_user):
    user = make_user("demo")

    with pytest.raises(ConstraintViolationError):
        storage.update_user(user.id, schemas.UserUpdate(full_name=None))


def test_update_missing_user_raises_not_found(storage):
    with pytest.raises(NotFoundError):
        storage.update_user(999999, schemas.UserUpdate(bio="nobody"))


def test_get_all_users_in_id_order(storage, make_user):
    names = ["admin", "rajesh", "priya"]
    for name in names:
        make_user(name)

    assert [u.username for u in storage.get_all_users()] == names


# Posts

def test_posts_newest_first(storage, make_user):
    user = make_user()
    first = make_post(storage, user, "first")
    second = make_post(storage, user, "second")
    third = make_post(storage, user, "third")

    posts = storage.get_all_posts()

    assert [p.id for p in posts] == [third.id, second.id, first.id]
    for newer, older in zip(posts, posts[1:]):
        assert newer.created_at >= older.created_at


def test_posts_by_user(storage, make_user):
    rajesh = make_user("rajesh")
    priya = make_user("priya")
    make_post(storage, rajesh, "from rajesh")
    mine = make_post(storage, priya, "from priya")
    latest = make_post(storage, priya, "again from priya")

    assert [p.id for p in storage.get_posts_by_user_id(priya.id)] == [latest.id, mine.id]
    assert storage.get_posts_by_user_id(999) == []


def test_post_defaults(storage, make_user):
    post = make_post(storage, make_user())

    assert post.images == []
    assert post.visibility == "public"
    assert storage.get_post(post.id) == post
    assert storage.get_post(999) is None


def test_post_keeps_image_order(storage, make_user):
    images = ["https://img/2.jpg", "https://img/1.jpg", "https://img/3.jpg"]
    post = storage.create_post(schemas.PostCreate(user_id=make_user().id, content="album", images=images))

    assert storage.get_post(post.id).images == images


def test_post_for_unknown_user_is_rejected(storage):
    with pytest.raises(ConstraintViolationError):
        storage.create_post(schemas.PostCreate(user_id=404, content="orphan"))


# Comments

def test_comments_oldest_first_with_author(storage, make_user):
    author = make_user("anjali", profile_image="https://img/anjali.jpg")
    reader = make_user("rajesh")
    post = make_post(storage, author)
    first = storage.create_comment(schemas.CommentCreate(post_id=post.id, user_id=reader.id, content="Great!"))
    second = storage.create_comment(schemas.CommentCreate(post_id=post.id, user_id=author.id, content="Thanks"))

    comments = storage.get_comments_by_post_id(post.id)

    assert [c.id for c in comments] == [first.id, second.id]
    assert comments[0].created_at <= comments[1].created_at
    assert comments[1].user == schemas.UserSummary(
        id=author.id,
        username="anjali",
        full_name="Anjali",
        profile_image="https://img/anjali.jpg",
    )


def test_comment_reply(storage, make_user):
    user = make_user()
    post = make_post(storage, user)
    parent = storage.create_comment(schemas.CommentCreate(post_id=post.id, user_id=user.id, content="Question"))
    reply = storage.create_comment(
        schemas.CommentCreate(post_id=post.id, user_id=user.id, content="Answer", parent_id=parent.id)
    )

    assert storage.get_comment(reply.id).parent_id == parent.id
    assert storage.get_comment(999) is None


def test_comment_on_unknown_post_is_rejected(storage, make_user):
    user = make_user()

    with pytest.raises(ConstraintViolationError):
        storage.create_comment(schemas.CommentCreate(post_id=77, user_id=user.id, content="hello?"))


# Likes

def test_like_twice_keeps_one_record(storage, make_user):
    user = make_user()
    post = make_post(storage, user)

    first = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))
    second = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))
    third = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id, type="love"))

    assert first == second == third
    assert first.type == "like"
    assert storage.get_likes_by_post_id(post.id) == [first]
    assert storage.get_like_count_by_post_id(post.id) == 1


def test_like_counts_per_post(storage, make_user):
    users = [make_user() for _ in range(3)]
    post = make_post(storage, users[0])
    other = make_post(storage, users[0])
    for user in users:
        storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))

    assert storage.get_like_count_by_post_id(post.id) == 3
    assert storage.get_like_count_by_post_id(other.id) == 0
    assert storage.check_user_liked_post(post.id, users[1].id)
    assert not storage.check_user_liked_post(other.id, users[1].id)


def test_unlike_then_relike(storage, make_user):
    user = make_user()
    post = make_post(storage, user)
    original = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))

    storage.delete_like(post.id, user.id)
    assert not storage.check_user_liked_post(post.id, user.id)
    assert storage.get_like(original.id) is None

    fresh = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))
    assert fresh.id != original.id
    assert storage.check_user_liked_post(post.id, user.id)
    assert storage.get_like_count_by_post_id(post.id) == 1


def test_like_ids_are_not_reused(storage, make_user):
    user = make_user()
    post = make_post(storage, user)
    like = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))
    storage.delete_like(post.id, user.id)

    again = storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))

    assert again.id == like.id + 1


def test_delete_missing_like_is_noop(storage, make_user):
    user = make_user()
    post = make_post(storage, user)

    storage.delete_like(post.id, user.id)
    storage.delete_like(999, 999)

    assert storage.get_like_count_by_post_id(post.id) == 0


def test_like_on_unknown_post_is_rejected(storage, make_user):
    user = make_user()

    with pytest.raises(ConstraintViolationError):
        storage.create_like(schemas.LikeCreate(post_id=31, user_id=user.id))


# Events

def test_events_by_date(storage, make_user):
    user = make_user()
    now = utcnow()
    later = make_event(storage, user, now + timedelta(days=10), "later")
    earlier = make_event(storage, user, now - timedelta(days=10), "earlier")
    middle = make_event(storage, user, now + timedelta(days=1), "middle")

    assert [e.id for e in storage.get_all_events()] == [earlier.id, middle.id, later.id]
    assert storage.get_event(middle.id) == middle
    assert storage.get_event(999) is None


def test_upcoming_events_boundary(storage, make_user):
    user = make_user()
    now = utcnow()
    make_event(storage, user, now, "starting now")
    soon = make_event(storage, user, now + timedelta(milliseconds=1), "one millisecond away")
    make_event(storage, user, now - timedelta(days=1), "yesterday")

    upcoming = storage.get_upcoming_events(now=now)

    assert [e.id for e in upcoming] == [soon.id]


def test_upcoming_events_are_not_capped(storage, make_user):
    user = make_user()
    now = utcnow()
    created = [make_event(storage, user, now + timedelta(days=days)) for days in (5, 1, 4, 2, 3)]

    upcoming = storage.get_upcoming_events(now=now)

    assert len(upcoming) == 5
    assert [e.date for e in upcoming] == sorted(e.date for e in created)


def test_upcoming_events_default_to_current_time(storage, make_user):
    user = make_user()
    future = make_event(storage, user, utcnow() + timedelta(hours=1))
    make_event(storage, user, utcnow() - timedelta(hours=1))

    assert [e.id for e in storage.get_upcoming_events()] == [future.id]


def test_event_dates_are_stored_as_naive_utc(storage, make_user):
    user = make_user()
    ist = timezone(timedelta(hours=5, minutes=30))
    event = make_event(storage, user, datetime(2030, 6, 24, 15, 30, tzinfo=ist))

    assert storage.get_event(event.id).date == datetime(2030, 6, 24, 10, 0)
    reference = datetime(2030, 6, 24, 9, 59, tzinfo=timezone.utc)
    assert [e.id for e in storage.get_upcoming_events(now=reference)] == [event.id]


# Groups

def test_create_group_enrols_creator_as_admin(storage, make_user):
    creator = make_user()
    group = storage.create_group(schemas.GroupCreate(name="Saini Business Network", created_by=creator.id))

    assert group.member_count == 1
    members = storage.get_group_members(group.id)
    assert len(members) == 1
    assert members[0].user_id == creator.id
    assert members[0].role == "admin"
    assert storage.get_group(group.id) == group


def test_member_count_tracks_members(storage, make_user):
    creator = make_user()
    group = storage.create_group(schemas.GroupCreate(name="Photography Club", created_by=creator.id))
    joiners = [make_user() for _ in range(4)]

    for user in joiners:
        member = storage.add_group_member(schemas.GroupMemberCreate(group_id=group.id, user_id=user.id))
        assert member.role == "member"

    assert storage.get_group(group.id).member_count == 5
    assert len(storage.get_group_members(group.id)) == 5


def test_add_member_to_missing_group_raises_not_found(storage, make_user):
    user = make_user()

    with pytest.raises(NotFoundError):
        storage.add_group_member(schemas.GroupMemberCreate(group_id=12, user_id=user.id))


def test_add_unknown_user_leaves_count_unchanged(storage, make_user):
    creator = make_user()
    group = storage.create_group(schemas.GroupCreate(name="Heritage", created_by=creator.id))

    with pytest.raises(ConstraintViolationError):
        storage.add_group_member(schemas.GroupMemberCreate(group_id=group.id, user_id=999))

    assert storage.get_group(group.id).member_count == 1
    assert len(storage.get_group_members(group.id)) == 1


def test_get_all_groups(storage, make_user):
    creator = make_user()
    names = ["Business", "Photography", "Heritage"]
    for name in names:
        storage.create_group(schemas.GroupCreate(name=name, created_by=creator.id))

    assert [g.name for g in storage.get_all_groups()] == names
    assert storage.get_group(999) is None


# Connections

def test_connection_defaults_to_pending(storage, make_user):
    a, b = make_user(), make_user()

    connection = storage.create_connection(schemas.ConnectionCreate(requester_id=a.id, addressee_id=b.id))

    assert connection.status == "pending"
    assert storage.get_connection(connection.id) == connection


def test_reverse_connection_request_returns_existing(storage, make_user):
    a, b = make_user(), make_user()
    original = storage.create_connection(schemas.ConnectionCreate(requester_id=a.id, addressee_id=b.id))
    storage.update_connection_status(original.id, "accepted")

    duplicate = storage.create_connection(schemas.ConnectionCreate(requester_id=b.id, addressee_id=a.id))

    assert duplicate.id == original.id
    assert duplicate.requester_id == a.id
    assert duplicate.status == "accepted"
    assert len(storage.get_user_connections(a.id)) == 1
    assert len(storage.get_user_connections(b.id)) == 1


def test_user_connections_cover_both_directions(storage, make_user):
    a, b, c, d = (make_user() for _ in range(4))
    sent = storage.create_connection(schemas.ConnectionCreate(requester_id=a.id, addressee_id=b.id))
    received = storage.create_connection(schemas.ConnectionCreate(requester_id=c.id, addressee_id=a.id))
    storage.create_connection(schemas.ConnectionCreate(requester_id=c.id, addressee_id=d.id))

    assert [conn.id for conn in storage.get_user_connections(a.id)] == [sent.id, received.id]
    assert storage.get_connection(999) is None


def test_update_connection_status(storage, make_user):
    a, b = make_user(), make_user()
    connection = storage.create_connection(schemas.ConnectionCreate(requester_id=a.id, addressee_id=b.id))

    updated = storage.update_connection_status(connection.id, "accepted")

    assert updated.status == "accepted"
    assert updated.created_at == connection.created_at
    assert storage.get_connection(connection.id).status == "accepted"


def test_update_missing_connection_raises_not_found(storage):
    with pytest.raises(NotFoundError):
        storage.update_connection_status(999999, "accepted")


def test_connection_to_unknown_user_is_rejected(storage, make_user):
    a = make_user()

    with pytest.raises(ConstraintViolationError):
        storage.create_connection(schemas.ConnectionCreate(requester_id=a.id, addressee_id=500))


# Isolation

def test_returned_records_are_copies(storage, make_user):
    user = make_user()
    post = storage.create_post(schemas.PostCreate(user_id=user.id, content="album", images=["a.jpg"]))

    post.images.append("b.jpg")
    post.content = "changed"
    user.bio = "changed"

    assert storage.get_post(post.id).images == ["a.jpg"]
    assert storage.get_post(post.id).content == "album"
    assert storage.get_user(user.id).bio is None
