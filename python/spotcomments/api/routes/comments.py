"""Comment API routes.

Routes are transport-only: each calls exactly one service function.

- Reads (list, counts, stats) are public; list annotates is_owner when a
  valid session is presented
- Create and delete require a session; delete is owner-only
- Success bodies are bare JSON; errors use the standard envelope
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from spotcomments.api.deps import get_db
from spotcomments.auth.middleware import Viewer, get_optional_viewer, get_viewer
from spotcomments.schemas.comments import (
    CommentListItem,
    CommentOut,
    CommentStatsOut,
    CreateCommentRequest,
    DeleteCommentOut,
    TrackCountsRequest,
)
from spotcomments.services import comments as comments_service

router = APIRouter()


@router.get("/comments")
def list_comments(
    db: Annotated[Session, Depends(get_db)],
    viewer: Annotated[Viewer | None, Depends(get_optional_viewer)],
    playlist_id: Annotated[str | None, Query()] = None,
    track_uri: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query()] = comments_service.DEFAULT_LIST_LIMIT,
    offset: Annotated[int, Query()] = 0,
) -> list[CommentListItem]:
    """List comments for a playlist (or one of its tracks), oldest first.

    Errors:
        E_PLAYLIST_ID_REQUIRED (400): playlist_id missing or empty.
    """
    return comments_service.list_comments(
        db,
        playlist_id=playlist_id,
        track_uri=track_uri,
        limit=limit,
        offset=offset,
        viewer=viewer,
    )


@router.post("/comments", status_code=201)
def create_comment(
    body: CreateCommentRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> CommentOut:
    """Create a comment on a playlist or a track.

    Errors:
        E_UNAUTHENTICATED / E_INVALID_TOKEN (401): No valid session.
        E_COMMENT_TEXT_INVALID (400): Empty or over 500 characters after trim.
        E_INVALID_TRACK_URI (400): Malformed track_uri.
    """
    return comments_service.create_comment(
        db,
        viewer,
        playlist_id=body.playlist_id,
        text=body.text,
        track_uri=body.track_uri,
    )


@router.post("/comments/counts")
def get_track_counts(
    body: TrackCountsRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, int]:
    """Comment counts per track URI. Tracks without comments are omitted.

    Errors:
        E_TOO_MANY_TRACK_URIS (400): More than 100 URIs.
        E_INVALID_TRACK_URI (400): Malformed entries (listed in the message).
    """
    return comments_service.get_track_counts(db, body.playlist_id, body.track_uris)


@router.get("/comments/stats/{playlist_id}")
def get_playlist_stats(
    playlist_id: str,
    db: Annotated[Session, Depends(get_db)],
) -> CommentStatsOut:
    """Aggregate comment stats for a playlist."""
    return comments_service.get_playlist_stats(db, playlist_id)


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> DeleteCommentOut:
    """Delete one of the viewer's own comments.

    Errors:
        E_COMMENT_NOT_FOUND (404): No such comment.
        E_FORBIDDEN (403): Viewer is not the comment's owner.
    """
    return comments_service.delete_comment(db, viewer, comment_id)
