"""Post creation and lookup routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from postrelay.domain.errors import PostValidationError, ScanError
from postrelay.orchestrator.manager import build_orchestrator
from postrelay.posts.service import PostSubmission, get_post, submit_posts
from postrelay.publishing.service import PostOutcome, PublishOrchestrator
from postrelay.schemas.posts import (
    CreatePostsRequest,
    CreatePostsResponse,
    PostOutcomeResponse,
    ScheduledPostResponse,
)
from postrelay.storage.db import get_session
from postrelay.storage.models import ScheduledPost


router = APIRouter(prefix="/posts", tags=["posts"])


def get_publish_orchestrator() -> PublishOrchestrator:
    return build_orchestrator()


def _post_response(post: ScheduledPost) -> ScheduledPostResponse:
    return ScheduledPostResponse(
        id=post.id,
        user_id=post.user_id,
        platform=post.platform,
        post_type=post.post_type,
        status=post.status,
        caption=post.caption,
        media_url=post.media_url,
        media_urls=post.media_urls,
        scheduled_at=post.scheduled_at,
        error_message=post.error_message,
        instagram_container_id=post.instagram_container_id,
        fb_post_id=post.fb_post_id,
        published_at=post.published_at,
        created_at=post.created_at,
    )


def _outcome_response(outcome: PostOutcome) -> PostOutcomeResponse:
    return PostOutcomeResponse(**outcome.to_result())


@router.post("", response_model=CreatePostsResponse, status_code=status.HTTP_201_CREATED)
def create_posts_endpoint(
    payload: CreatePostsRequest,
    session: Session = Depends(get_session),
    orchestrator: PublishOrchestrator = Depends(get_publish_orchestrator),
) -> CreatePostsResponse:
    submission = PostSubmission(
        caption=payload.caption,
        platforms=payload.platforms,
        post_types=payload.post_types,
        media_urls=payload.media_urls,
        scheduled_at=payload.scheduled_at,
        publish_now=payload.publish_now,
        user_id=payload.user_id,
    )
    try:
        result = submit_posts(session, submission, orchestrator=orchestrator)
    except PostValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except ScanError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return CreatePostsResponse(
        posts=[_post_response(post) for post in result.posts],
        results=[_outcome_response(outcome) for outcome in result.outcomes],
    )


@router.get("/{post_id}", response_model=ScheduledPostResponse)
def get_post_endpoint(post_id: str, session: Session = Depends(get_session)) -> ScheduledPostResponse:
    post = get_post(session, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="post_not_found")
    return _post_response(post)
