"""Demo data for a fresh store."""

import logging
from datetime import timedelta

from saini_connect import schemas
from saini_connect.storage.base import Storage, utcnow
from saini_connect.utils import hash_password

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {
        "username": "admin",
        "password": "password123",
        "full_name": "Anjali Saini",
        "email": "anjali@sainiconnect.com",
        "profile_image": "https://images.unsplash.com/photo-1494790108377-be9c29b29330?ixlib=rb-1.2.1&auto=format&fit=crop&w=256&q=80",
        "cover_image": "https://images.unsplash.com/photo-1557426272-fc759fdf7a8d?ixlib=rb-1.2.1&auto=format&fit=crop&w=1024&q=80",
        "bio": "Software Engineer passionate about connecting the Saini community worldwide.",
        "location": "Delhi, India",
        "occupation": "Software Engineer",
    },
    {
        "username": "rajesh",
        "password": "password123",
        "full_name": "Rajesh Saini",
        "email": "rajesh@sainiconnect.com",
        "profile_image": "https://images.unsplash.com/photo-1560250097-0b93528c311a?ixlib=rb-1.2.1&auto=format&fit=crop&w=256&q=80",
        "bio": "Entrepreneur and community leader.",
        "location": "Mumbai, India",
        "occupation": "Business Owner",
    },
    {
        "username": "priya",
        "password": "password123",
        "full_name": "Priya Saini",
        "email": "priya@sainiconnect.com",
        "profile_image": "https://images.unsplash.com/photo-1607746882042-944635dfe10e?ixlib=rb-1.2.1&auto=format&fit=crop&w=256&q=80",
        "bio": "Food blogger and culinary enthusiast.",
        "location": "Jaipur, India",
        "occupation": "Food Blogger",
    },
    {
        "username": "vikram",
        "password": "password123",
        "full_name": "Vikram Saini",
        "email": "vikram@sainiconnect.com",
        "profile_image": "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?ixlib=rb-1.2.1&auto=format&fit=crop&w=256&q=80",
        "bio": "Tech enthusiast and software developer.",
        "location": "Bangalore, India",
        "occupation": "Software Engineer",
    },
    {
        "username": "meera",
        "password": "password123",
        "full_name": "Meera Saini",
        "email": "meera@sainiconnect.com",
        "profile_image": "https://images.unsplash.com/photo-1517841905240-472988babdf9?ixlib=rb-1.2.1&auto=format&fit=crop&w=256&q=80",
        "bio": "Healthcare professional working in community wellness.",
        "location": "Chennai, India",
        "occupation": "Doctor",
    },
    {
        "username": "demo",
        "password": "demo123",
        "full_name": "Demo User",
        "email": "demo@sainiconnect.com",
        "profile_image": "https://images.unsplash.com/photo-1599566150163-29194dcaad36?ixlib=rb-1.2.1&auto=format&fit=crop&w=256&q=80",
        "bio": "This is a demo account for testing the application. Username: demo, Password: demo123",
        "location": "New Delhi, India",
        "occupation": "Student",
    },
]


def seed_demo_data(storage: Storage) -> bool:
    """Populate ``storage`` with demo content.

    Returns ``False`` without writing anything when the admin account is
    already present.
    """
    if storage.get_user_by_username("admin") is not None:
        logger.info("Demo data already present, skipping seed")
        return False

    users = {}
    for entry in DEMO_USERS:
        values = dict(entry, password=hash_password(entry["password"]))
        user = storage.create_user(schemas.UserCreate(**values))
        users[user.username] = user

    admin, rajesh, priya = users["admin"], users["rajesh"], users["priya"]

    leadership_post = storage.create_post(schemas.PostCreate(
        user_id=rajesh.id,
        content=(
            "Excited to share that our Saini Youth Leadership program is now accepting applications "
            "for the summer batch! This is a great opportunity for our community's young talent to "
            "develop leadership skills. Tag someone who might be interested."
        ),
        images=["https://images.unsplash.com/photo-1557426272-fc759fdf7a8d?ixlib=rb-1.2.1&auto=format&fit=crop&w=1024&q=80"],
    ))
    recipe_post = storage.create_post(schemas.PostCreate(
        user_id=priya.id,
        content=(
            "Just tried recreating my grandmother's special Saini-style kadhi recipe. It brings back so "
            "many childhood memories! Would love to organize a virtual cooking session where we can "
            "share traditional recipes from our community. Who's interested?"
        ),
        images=[
            "https://images.unsplash.com/photo-1631452180519-c014fe946bc7?ixlib=rb-1.2.1&auto=format&fit=crop&w=800&q=80",
            "https://images.unsplash.com/photo-1596097635121-14b8433e4bbd?ixlib=rb-1.2.1&auto=format&fit=crop&w=800&q=80",
        ],
    ))

    storage.create_comment(schemas.CommentCreate(
        post_id=leadership_post.id,
        user_id=admin.id,
        content="This is such a valuable initiative! Will definitely share with my cousins.",
    ))
    storage.create_comment(schemas.CommentCreate(
        post_id=recipe_post.id,
        user_id=rajesh.id,
        content=(
            "Wow! Looks delicious. I'm absolutely interested in the cooking session. My grandmother "
            "had a special way to make it too with some secret ingredients!"
        ),
    ))

    for post, user in [
        (leadership_post, admin),
        (leadership_post, priya),
        (recipe_post, admin),
        (recipe_post, rajesh),
    ]:
        storage.create_like(schemas.LikeCreate(post_id=post.id, user_id=user.id))

    festival_start = (utcnow() + timedelta(days=30)).replace(hour=10, minute=0, second=0, microsecond=0)
    storage.create_event(schemas.EventCreate(
        title="Saini Cultural Festival",
        description="Annual cultural gathering for the Saini community featuring traditional music, dance, and food.",
        location="Delhi Convention Center",
        date=festival_start,
        end_date=festival_start + timedelta(hours=7),
        image="https://images.unsplash.com/photo-1516450360452-9312f5e86fc7?ixlib=rb-1.2.1&auto=format&fit=crop&w=1024&q=80",
        created_by=admin.id,
    ))
    meetup_start = (utcnow() + timedelta(days=51)).replace(hour=19, minute=0, second=0, microsecond=0)
    storage.create_event(schemas.EventCreate(
        title="Community Meetup",
        description="Virtual networking event for Saini community members around the world.",
        location="Virtual Event",
        date=meetup_start,
        end_date=meetup_start + timedelta(minutes=90),
        created_by=admin.id,
    ))

    business = storage.create_group(schemas.GroupCreate(
        name="Saini Business Network",
        description="A group for entrepreneurs and business professionals from the Saini community.",
        image="https://images.unsplash.com/photo-1556761175-4b46a572b786?ixlib=rb-1.2.1&auto=format&fit=crop&w=1024&q=80",
        created_by=rajesh.id,
    ))
    photography = storage.create_group(schemas.GroupCreate(
        name="Saini Photography Club",
        description="Share your photography, get feedback, and connect with fellow photographers.",
        image="https://images.unsplash.com/photo-1452587925148-ce544e77e70d?ixlib=rb-1.2.1&auto=format&fit=crop&w=1024&q=80",
        created_by=priya.id,
    ))
    heritage = storage.create_group(schemas.GroupCreate(
        name="Saini Heritage & Culture",
        description="Preserving and celebrating our rich cultural heritage and traditions.",
        image="https://images.unsplash.com/photo-1464037866556-6812c9d1c72e?ixlib=rb-1.2.1&auto=format&fit=crop&w=1024&q=80",
        created_by=admin.id,
    ))

    for group, user in [
        (business, admin),
        (photography, admin),
        (heritage, rajesh),
        (heritage, priya),
    ]:
        storage.add_group_member(schemas.GroupMemberCreate(group_id=group.id, user_id=user.id))

    logger.info("Seeded %d demo users", len(users))
    return True
