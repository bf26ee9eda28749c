"""Post-related endpoints for the threadhub API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from threadhub.core.errors import Forbidden
from threadhub.schemas.common import Page, error_responses
from threadhub.schemas.post import (
    DeleteResponse,
    FeedItem,
    LikeResponse,
    PostDetail,
    ReceivedReplies,
    ReplyItem,
    ThreadNode,
    UserReplyItem,
    UserRepostItem,
)
from threadhub.services import DeleteMode
from threadhub.services.blob_store import Upload

from ..dependencies import (
    ContextDep,
    CurrentUserDep,
    FeedServiceDep,
    GraphEngineDep,
    read_upload,
)

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
    responses=error_responses(400, 401, 403, 404, 409, 410),
)

PageQuery = Annotated[int, Query(description="1-based page number")]
LimitQuery = Annotated[int | None, Query(description="Page size, 1-50")]


def _limit(context: ContextDep, limit: int | None) -> int:
    return context.settings.default_page_size if limit is None else limit


@router.post(
    "",
    summary="Create a post, reply or repost",
    status_code=status.HTTP_201_CREATED,
    response_model=PostDetail,
)
async def create_post(
    current_user: CurrentUserDep,
    engine: GraphEngineDep,
    feed: FeedServiceDep,
    kind: Annotated[str, Form()] = "original",
    content: Annotated[str | None, Form()] = None,
    parent_id: Annotated[int | None, Form()] = None,
    original_id: Annotated[int | None, Form()] = None,
    quote_content: Annotated[str | None, Form()] = None,
    visibility: Annotated[str, Form()] = "public",
    media: Annotated[list[UploadFile] | None, File()] = None,
) -> PostDetail:
    """Create a new post.

    Args:
        current_user: Authenticated author
        engine: Graph mutation engine
        feed: Feed service used to render the result
        kind: ``original``, ``reply`` or ``repost``
        content: Post body; required unless reposting
        parent_id: Post being replied to
        original_id: Post being reposted
        quote_content: Optional quote attached to a repost
        visibility: ``public`` or ``private``
        media: Up to four image files

    Returns:
        The created post
    """
    uploads: list[Upload] = []
    for part in media or []:
        upload = await read_upload(part)
        if upload is not None:
            uploads.append(upload)

    post = await engine.create_post(
        current_user,
        kind=kind,
        content=content,
        parent_id=parent_id,
        original_id=original_id,
        quote_content=quote_content,
        visibility=visibility,
        uploads=uploads,
    )
    return feed.get_post(post.id, current_user)


@router.get("/feed", response_model=Page[FeedItem])
async def get_feed(
    context: ContextDep,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = None,
) -> Page[FeedItem]:
    """Global feed of public posts and reposts, newest first."""
    return feed.global_feed(current_user, page, _limit(context, limit))


@router.get("/users/{username}/posts", response_model=Page[FeedItem])
async def get_user_posts(
    username: str,
    context: ContextDep,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = None,
) -> Page[FeedItem]:
    return feed.user_posts(username, current_user, page, _limit(context, limit))


@router.get("/users/{username}/replies", response_model=Page[UserReplyItem])
async def get_user_replies(
    username: str,
    context: ContextDep,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = None,
) -> Page[UserReplyItem]:
    return feed.user_replies(username, current_user, page, _limit(context, limit))


@router.get("/users/{username}/reposts", response_model=Page[UserRepostItem])
async def get_user_reposts(
    username: str,
    context: ContextDep,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = None,
) -> Page[UserRepostItem]:
    return feed.user_reposts(username, current_user, page, _limit(context, limit))


@router.get("/users/{username}/received-replies", response_model=list[ReceivedReplies])
async def get_replies_to_user_posts(
    username: str,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
) -> list[ReceivedReplies]:
    """Replies left under each of the user's posts, newest first."""
    return feed.replies_to_user_posts(username, current_user)


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: int,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
) -> PostDetail:
    return feed.get_post(post_id, current_user)


@router.get("/{post_id}/replies", response_model=Page[ReplyItem])
async def get_post_replies(
    post_id: int,
    context: ContextDep,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = None,
) -> Page[ReplyItem]:
    """Direct replies of a post, oldest first."""
    return feed.post_replies(post_id, current_user, page, _limit(context, limit))


@router.get("/{post_id}/thread", response_model=ThreadNode)
async def get_thread(
    post_id: int,
    current_user: CurrentUserDep,
    feed: FeedServiceDep,
) -> ThreadNode:
    """The post with its full nested reply tree."""
    return feed.get_thread(post_id, current_user)


@router.patch("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(
    post_id: int,
    current_user: CurrentUserDep,
    engine: GraphEngineDep,
) -> LikeResponse:
    result = engine.toggle_like(post_id, current_user)
    return LikeResponse(liked=result.liked, like_count=result.like_count)


@router.delete("/{post_id}", response_model=DeleteResponse)
async def delete_post(
    post_id: int,
    current_user: CurrentUserDep,
    engine: GraphEngineDep,
    mode: str = Query("soft", description="selfOnly, soft, full or adminForce"),
) -> DeleteResponse:
    """Delete or hide a post.

    ``selfOnly`` hides it from the caller only, ``soft`` tombstones it, and
    ``full`` removes it together with its reply tree. ``adminForce`` is
    ``full`` without the authorship check and requires the admin role.
    """
    delete_mode = DeleteMode.parse(mode)
    if delete_mode is DeleteMode.ADMIN_FORCE and not current_user.is_admin:
        raise Forbidden("Admin privileges required.")
    outcome = await engine.delete_post(post_id, current_user, delete_mode)
    return DeleteResponse(
        post_id=outcome.post_id,
        mode=outcome.mode.value,
        removed_reply_ids=outcome.removed_reply_ids,
        tombstoned_repost_ids=outcome.tombstoned_repost_ids,
    )
