import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm

from saini_connect import schemas
from saini_connect.config import Settings, settings
from saini_connect.errors import ConstraintViolationError, NotFoundError
from saini_connect.seed import seed_demo_data
from saini_connect.storage import Storage, create_storage
from saini_connect.utils import create_access_token, hash_password, verify_access_token, verify_password

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)

router = APIRouter(prefix="/api")


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), storage: Storage = Depends(get_storage)):
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(token)
    if payload is None or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = int(payload["sub"])
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    user = storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def to_public(user: schemas.User) -> schemas.PublicUser:
    return schemas.PublicUser(**user.model_dump(exclude={"password"}))


def auth_response(user: schemas.User) -> schemas.AuthResponse:
    access_token = create_access_token(data={"sub": str(user.id)})
    return schemas.AuthResponse(access_token=access_token, user=to_public(user))


def attach_users(posts: List[schemas.Post], storage: Storage) -> List[schemas.PostWithUser]:
    authors = {}
    results = []
    for post in posts:
        if post.user_id not in authors:
            author = storage.get_user(post.user_id)
            authors[post.user_id] = to_public(author) if author else None
        results.append(schemas.PostWithUser(**post.model_dump(), user=authors[post.user_id]))
    return results


# =========== Auth ===========

@router.post("/register", tags=["Auth"], status_code=status.HTTP_201_CREATED, response_model=schemas.AuthResponse)
def register_user(body: schemas.UserRegister, storage: Storage = Depends(get_storage)):
    if storage.get_user_by_username(body.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username is already taken")

    user = storage.create_user(schemas.UserCreate(
        username=body.username,
        password=hash_password(body.password),
        email=body.email,
        full_name=body.full_name,
        profile_image=f"https://ui-avatars.com/api/?name={quote(body.full_name, safe='')}&background=random",
    ))
    logger.info("Registered user %s (%s)", user.id, user.username)
    return auth_response(user)


@router.post("/login", tags=["Auth"], response_model=schemas.AuthResponse)
def login_user(form_data: OAuth2PasswordRequestForm = Depends(), storage: Storage = Depends(get_storage)):
    user = storage.get_user_by_username(form_data.username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username")
    if not verify_password(form_data.password, user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password")
    return auth_response(user)


@router.post("/logout", tags=["Auth"])
def logout_user():
    # Tokens are stateless; the client discards its copy
    return {"message": "Logged out successfully"}


@router.post("/reset-password", tags=["Auth"])
def reset_password(body: schemas.PasswordResetRequest):
    logger.info("Password reset requested for %s", body.email)
    return {
        "message": "Password reset instructions sent to your email",
        "note": "This is a demo. In a real app, an email would be sent with a reset link.",
    }


# =========== Users ===========

@router.get("/users/me", tags=["Users"], response_model=schemas.PublicUser)
def read_users_me(current_user: schemas.User = Depends(get_current_user)):
    return to_public(current_user)


@router.patch("/users/me", tags=["Users"], response_model=schemas.PublicUser)
def update_users_me(
    body: schemas.UserUpdate,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    changes = body.model_dump(exclude_unset=True)
    if changes.get("password") is not None:
        changes["password"] = hash_password(changes["password"])
    updated = storage.update_user(current_user.id, schemas.UserUpdate(**changes))
    return to_public(updated)


@router.get("/users", tags=["Users"], response_model=List[schemas.PublicUser])
def get_users(storage: Storage = Depends(get_storage)):
    return [to_public(user) for user in storage.get_all_users()]


@router.post("/users", tags=["Users"], status_code=status.HTTP_201_CREATED, response_model=schemas.PublicUser)
def create_user(body: schemas.UserCreate, storage: Storage = Depends(get_storage)):
    user = storage.create_user(body.model_copy(update={"password": hash_password(body.password)}))
    logger.info("Created user %s (%s)", user.id, user.username)
    return to_public(user)


@router.get("/users/suggested", tags=["Users"], response_model=List[schemas.PublicUser])
def get_suggested_users(
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return [to_public(user) for user in storage.get_all_users() if user.id != current_user.id]


@router.get("/users/me/posts", tags=["Users"], response_model=List[schemas.PostWithUser])
def get_my_posts(
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return attach_users(storage.get_posts_by_user_id(current_user.id), storage)


@router.get("/users/{user_id}", tags=["Users"], response_model=schemas.PublicUser)
def get_user(user_id: int, storage: Storage = Depends(get_storage)):
    user = storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return to_public(user)


@router.get("/users/{user_id}/posts", tags=["Users"], response_model=List[schemas.PostWithUser])
def get_user_posts(user_id: int, storage: Storage = Depends(get_storage)):
    if storage.get_user(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return attach_users(storage.get_posts_by_user_id(user_id), storage)


# =========== Posts ===========

@router.get("/posts", tags=["Posts"], response_model=List[schemas.PostWithUser])
def get_posts(storage: Storage = Depends(get_storage)):
    return attach_users(storage.get_all_posts(), storage)


@router.post("/posts", tags=["Posts"], status_code=status.HTTP_201_CREATED, response_model=schemas.Post)
def create_post(
    body: schemas.PostIn,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return storage.create_post(schemas.PostCreate(user_id=current_user.id, **body.model_dump()))


def get_post_or_404(post_id: int, storage: Storage) -> schemas.Post:
    post = storage.get_post(post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.get("/posts/{post_id}", tags=["Posts"], response_model=schemas.PostWithUser)
def get_post(post_id: int, storage: Storage = Depends(get_storage)):
    post = get_post_or_404(post_id, storage)
    return attach_users([post], storage)[0]


# =========== Comments & Likes ===========

@router.get("/posts/{post_id}/comments", tags=["Comments & Likes"], response_model=List[schemas.Comment])
def get_comments(post_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_comments_by_post_id(post_id)


@router.post(
    "/posts/{post_id}/comments",
    tags=["Comments & Likes"],
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.Comment,
)
def create_comment(
    post_id: int,
    body: schemas.CommentIn,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    get_post_or_404(post_id, storage)
    return storage.create_comment(schemas.CommentCreate(
        post_id=post_id,
        user_id=current_user.id,
        content=body.content,
        parent_id=body.parent_id,
    ))


@router.get("/posts/{post_id}/likes/count", tags=["Comments & Likes"], response_model=int)
def get_like_count(post_id: int, storage: Storage = Depends(get_storage)):
    return storage.get_like_count_by_post_id(post_id)


@router.get("/posts/{post_id}/likes/me", tags=["Comments & Likes"], response_model=bool)
def check_liked(
    post_id: int,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return storage.check_user_liked_post(post_id, current_user.id)


@router.post(
    "/posts/{post_id}/likes",
    tags=["Comments & Likes"],
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.Like,
)
def like_post(
    post_id: int,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    get_post_or_404(post_id, storage)
    return storage.create_like(schemas.LikeCreate(post_id=post_id, user_id=current_user.id, type="like"))


@router.delete("/posts/{post_id}/likes", tags=["Comments & Likes"], status_code=status.HTTP_204_NO_CONTENT)
def unlike_post(
    post_id: int,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    storage.delete_like(post_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =========== Events ===========

@router.get("/events", tags=["Events"], response_model=List[schemas.Event])
def get_events(storage: Storage = Depends(get_storage)):
    return storage.get_all_events()


@router.get("/events/upcoming", tags=["Events"], response_model=List[schemas.Event])
def get_upcoming_events(
    limit: Optional[int] = Query(None, ge=1),
    storage: Storage = Depends(get_storage),
):
    events = storage.get_upcoming_events()
    return events[:limit] if limit is not None else events


@router.post("/events", tags=["Events"], status_code=status.HTTP_201_CREATED, response_model=schemas.Event)
def create_event(
    body: schemas.EventIn,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return storage.create_event(schemas.EventCreate(created_by=current_user.id, **body.model_dump()))


@router.get("/events/{event_id}", tags=["Events"], response_model=schemas.Event)
def get_event(event_id: int, storage: Storage = Depends(get_storage)):
    event = storage.get_event(event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


# =========== Groups ===========

@router.get("/groups", tags=["Groups"], response_model=List[schemas.Group])
def get_groups(storage: Storage = Depends(get_storage)):
    return storage.get_all_groups()


@router.post("/groups", tags=["Groups"], status_code=status.HTTP_201_CREATED, response_model=schemas.Group)
def create_group(
    body: schemas.GroupIn,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return storage.create_group(schemas.GroupCreate(created_by=current_user.id, **body.model_dump()))


def get_group_or_404(group_id: int, storage: Storage) -> schemas.Group:
    group = storage.get_group(group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return group


@router.get("/groups/{group_id}", tags=["Groups"], response_model=schemas.Group)
def get_group(group_id: int, storage: Storage = Depends(get_storage)):
    return get_group_or_404(group_id, storage)


@router.get("/groups/{group_id}/members", tags=["Groups"], response_model=List[schemas.GroupMember])
def get_group_members(group_id: int, storage: Storage = Depends(get_storage)):
    get_group_or_404(group_id, storage)
    return storage.get_group_members(group_id)


@router.post(
    "/groups/{group_id}/members",
    tags=["Groups"],
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.GroupMember,
)
def join_group(
    group_id: int,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    get_group_or_404(group_id, storage)
    if any(member.user_id == current_user.id for member in storage.get_group_members(group_id)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You are already a member of this group")
    return storage.add_group_member(schemas.GroupMemberCreate(group_id=group_id, user_id=current_user.id))


# =========== Connections ===========

@router.get("/connections", tags=["Connections"], response_model=List[schemas.Connection])
def get_connections(
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return storage.get_user_connections(current_user.id)


@router.post(
    "/connections",
    tags=["Connections"],
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.Connection,
)
def create_connection(
    body: schemas.ConnectionIn,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if body.addressee_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot connect with yourself")
    if storage.get_user(body.addressee_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return storage.create_connection(schemas.ConnectionCreate(
        requester_id=current_user.id,
        addressee_id=body.addressee_id,
    ))


@router.patch("/connections/{connection_id}", tags=["Connections"], response_model=schemas.Connection)
def update_connection(
    connection_id: int,
    body: schemas.ConnectionStatusIn,
    current_user: schemas.User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    connection = storage.get_connection(connection_id)
    if connection is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
    if connection.addressee_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the addressee can respond to a connection request",
        )
    return storage.update_connection_status(connection_id, body.status)


# =========== Application ===========

def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


def constraint_violation_handler(request: Request, exc: ConstraintViolationError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def server_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Server error"})


def create_app(storage: Optional[Storage] = None, app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    app_settings.warn_if_insecure()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app_settings.SEED_DEMO_DATA:
            seed_demo_data(app.state.storage)
        yield
        app.state.storage.close()

    app = FastAPI(
        title="Saini Connect",
        description="Community social network API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.storage = storage if storage is not None else create_storage(app_settings)

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ConstraintViolationError, constraint_violation_handler)
    app.add_exception_handler(Exception, server_error_handler)
    app.include_router(router)
    return app


app = create_app()
