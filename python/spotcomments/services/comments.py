"""Comment store access.

Service functions correspond 1:1 with route handlers.
Routes are transport-only and call exactly one service function.

All operations:
- Validate arguments before touching the store
- Apply the authorization policy (public reads, session-gated writes,
  owner-only delete)
- Remap store constraint violations by constraint name
"""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spotcomments.auth import policy
from spotcomments.auth.middleware import Viewer
from spotcomments.auth.policy import Decision, Operation
from spotcomments.db.models import CK_COMMENTS_TEXT_LENGTH, FK_COMMENTS_USER_ID, Comment
from spotcomments.db.session import transaction
from spotcomments.errors import (
    ApiError,
    ApiErrorCode,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
)
from spotcomments.logging import get_logger
from spotcomments.schemas.comments import (
    CommentListItem,
    CommentOut,
    CommentStatsOut,
    DeleteCommentOut,
)

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

TRACK_URI_PREFIX = "spotify:track:"
MIN_TRACK_URI_LENGTH = 20

MAX_COMMENT_LENGTH = 500

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

MAX_COUNT_TRACK_URIS = 100


# =============================================================================
# Shared Helpers
# =============================================================================


def is_valid_track_uri(track_uri: object) -> bool:
    """Track URI rule shared by create and bulk counts."""
    return (
        isinstance(track_uri, str)
        and track_uri.startswith(TRACK_URI_PREFIX)
        and len(track_uri) >= MIN_TRACK_URI_LENGTH
    )


def require_playlist_id(playlist_id: str | None) -> str:
    if not playlist_id or not playlist_id.strip():
        raise InvalidRequestError(ApiErrorCode.E_PLAYLIST_ID_REQUIRED, "playlist_id is required")
    return playlist_id


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIST_LIMIT
    return max(1, min(limit, MAX_LIST_LIMIT))


def map_integrity_error(e: IntegrityError) -> ApiError:
    """Map IntegrityError to appropriate ApiError based on constraint name."""
    constraint_name = None

    # psycopg exposes the constraint name; SQLite only puts it in the message
    diag = getattr(e.orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None):
        constraint_name = diag.constraint_name
    else:
        msg = str(e.orig) if e.orig else str(e)
        for name in (CK_COMMENTS_TEXT_LENGTH, FK_COMMENTS_USER_ID):
            if name in msg:
                constraint_name = name
                break
        else:
            # SQLite reports foreign key failures without a name; comments has one FK
            if "FOREIGN KEY constraint failed" in msg:
                constraint_name = FK_COMMENTS_USER_ID

    if constraint_name == CK_COMMENTS_TEXT_LENGTH:
        return ConflictError(
            ApiErrorCode.E_CONSTRAINT_VIOLATION,
            f"Comment text must be between 1 and {MAX_COMMENT_LENGTH} characters",
        )
    if constraint_name == FK_COMMENTS_USER_ID:
        return UnauthorizedError(
            ApiErrorCode.E_UNAUTHENTICATED, "Session user no longer exists"
        )

    logger.error("unknown_integrity_error", constraint=constraint_name, error=str(e))
    return ApiError(ApiErrorCode.E_INTERNAL, "Database constraint violation")


# =============================================================================
# Operations
# =============================================================================


def list_comments(
    db: Session,
    playlist_id: str | None,
    track_uri: str | None = None,
    limit: int | None = DEFAULT_LIST_LIMIT,
    offset: int = 0,
    viewer: Viewer | None = None,
) -> list[CommentListItem]:
    """List comments for a playlist, or for one track within it.

    track_uri None (or empty) selects playlist-level comments only. Results
    are oldest first, with id as the tiebreak for equal timestamps.

    Raises:
        InvalidRequestError(E_PLAYLIST_ID_REQUIRED): playlist_id missing/empty.
        InvalidRequestError(E_INVALID_REQUEST): negative offset.
    """
    playlist_id = require_playlist_id(playlist_id)
    if offset is None:
        offset = 0
    if offset < 0:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "offset must be >= 0")
    policy.enforce(Operation.LIST, viewer)

    query = select(Comment).where(Comment.playlist_id == playlist_id)
    if track_uri:
        query = query.where(Comment.track_uri == track_uri)
    else:
        query = query.where(Comment.track_uri.is_(None))
    query = (
        query.order_by(Comment.created_at.asc(), Comment.id.asc())
        .limit(clamp_limit(limit))
        .offset(offset)
    )

    comments = db.scalars(query).all()
    return [
        CommentListItem(
            id=c.id,
            playlist_id=c.playlist_id,
            track_uri=c.track_uri,
            text=c.text,
            created_at=c.created_at,
            is_owner=policy.is_owner(viewer, c.user_id),
        )
        for c in comments
    ]


def create_comment(
    db: Session,
    viewer: Viewer | None,
    playlist_id: str | None,
    text: str | None,
    track_uri: str | None = None,
) -> CommentOut:
    """Create a comment owned by the viewer.

    Text is stored trimmed. An empty track_uri is treated as playlist-level.

    Raises:
        UnauthorizedError: No validated session.
        InvalidRequestError: Missing playlist, bad text length, bad track URI.
        ConflictError: Store constraint rejected the row.
    """
    policy.enforce(Operation.CREATE, viewer)
    playlist_id = require_playlist_id(playlist_id)

    trimmed = text.strip() if isinstance(text, str) else ""
    if not trimmed:
        raise InvalidRequestError(
            ApiErrorCode.E_COMMENT_TEXT_INVALID, "Comment text is required"
        )
    if len(trimmed) > MAX_COMMENT_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_COMMENT_TEXT_INVALID,
            f"Comment text must be {MAX_COMMENT_LENGTH} characters or fewer",
        )

    track_uri = track_uri or None
    if track_uri is not None and not is_valid_track_uri(track_uri):
        raise InvalidRequestError(ApiErrorCode.E_INVALID_TRACK_URI, "Invalid track_uri format")

    comment = Comment(
        playlist_id=playlist_id,
        track_uri=track_uri,
        text=trimmed,
        user_id=viewer.user_id,
    )
    try:
        with transaction(db):
            db.add(comment)
            db.flush()
    except IntegrityError as e:
        raise map_integrity_error(e) from e

    logger.info("comment_created", comment_id=comment.id, playlist_id=playlist_id)
    return CommentOut.model_validate(comment)


def get_track_counts(
    db: Session,
    playlist_id: str | None,
    track_uris: list[str] | None,
) -> dict[str, int]:
    """Count comments per track for a batch of track URIs in one query.

    Tracks without comments are absent from the result.

    Raises:
        InvalidRequestError: playlist_id or track_uris missing, more than
            100 URIs, or any malformed URI (all offenders listed).
    """
    if not playlist_id or not playlist_id.strip() or track_uris is None:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, "playlist_id and track_uris array are required"
        )
    policy.enforce(Operation.BULK_COUNTS, None)

    if not track_uris:
        return {}

    if len(track_uris) > MAX_COUNT_TRACK_URIS:
        raise InvalidRequestError(
            ApiErrorCode.E_TOO_MANY_TRACK_URIS,
            f"Too many track URIs (max {MAX_COUNT_TRACK_URIS})",
        )

    invalid = [uri for uri in track_uris if not is_valid_track_uri(uri)]
    if invalid:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_TRACK_URI,
            "Invalid track URI format: " + ", ".join(str(uri) for uri in invalid),
        )

    rows = db.execute(
        select(Comment.track_uri, func.count(Comment.id))
        .where(Comment.playlist_id == playlist_id, Comment.track_uri.in_(set(track_uris)))
        .group_by(Comment.track_uri)
    ).all()

    return {track_uri: count for track_uri, count in rows}


def get_playlist_stats(db: Session, playlist_id: str | None) -> CommentStatsOut:
    """Aggregate stats across playlist-level and track-level comments.

    Timestamps are null for a playlist with no comments.
    """
    playlist_id = require_playlist_id(playlist_id)
    policy.enforce(Operation.STATS, None)

    row = db.execute(
        select(
            func.count(Comment.id),
            func.count(func.distinct(Comment.track_uri)),
            func.min(Comment.created_at),
            func.max(Comment.created_at),
        ).where(Comment.playlist_id == playlist_id)
    ).one()

    total, tracks, first, latest = row
    return CommentStatsOut(
        total_comments=total or 0,
        tracks_with_comments=tracks or 0,
        first_comment=first,
        latest_comment=latest,
    )


def delete_comment(db: Session, viewer: Viewer | None, comment_id: int) -> DeleteCommentOut:
    """Delete a comment. Owner-only.

    Raises:
        UnauthorizedError: No validated session.
        NotFoundError(E_COMMENT_NOT_FOUND): Comment does not exist.
        ForbiddenError: Caller is not the recorded owner (or owner is null).
    """
    if policy.decide(Operation.DELETE, viewer) is Decision.DENY_UNAUTHENTICATED:
        raise UnauthorizedError()

    comment = db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError(ApiErrorCode.E_COMMENT_NOT_FOUND, "Comment not found")

    policy.enforce(Operation.DELETE, viewer, comment.user_id)

    with transaction(db):
        db.delete(comment)

    logger.info("comment_deleted", comment_id=comment_id)
    return DeleteCommentOut(message="Comment deleted successfully", deleted_id=comment_id)
