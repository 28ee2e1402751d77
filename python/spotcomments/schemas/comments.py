"""Comment Pydantic schemas.

Request bodies carry only basic typing; text trimming, length and track URI
rules are enforced in the comments service so the same rules apply to every
caller.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_serializer

from spotcomments.db.models import as_utc

# =============================================================================
# Output Schemas
# =============================================================================


class CommentOut(BaseModel):
    """A comment as returned by POST /comments."""

    id: int
    playlist_id: str
    track_uri: str | None
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return as_utc(value).isoformat()


class CommentListItem(CommentOut):
    """A comment in a list result.

    is_owner is a viewer-local annotation: True iff the caller presented a
    valid session whose user id matches the comment's recorded owner.
    """

    is_owner: bool


class CommentStatsOut(BaseModel):
    total_comments: int
    tracks_with_comments: int
    first_comment: datetime | None
    latest_comment: datetime | None

    @field_serializer("first_comment", "latest_comment")
    def serialize_timestamp(self, value: datetime | None) -> str | None:
        return as_utc(value).isoformat() if value is not None else None


class DeleteCommentOut(BaseModel):
    message: str
    deleted_id: int


# =============================================================================
# Request Schemas
# =============================================================================


class CreateCommentRequest(BaseModel):
    """Body of POST /comments. track_uri omitted or null means playlist-level."""

    playlist_id: str
    track_uri: str | None = None
    text: str


class TrackCountsRequest(BaseModel):
    """Body of POST /comments/counts.

    track_uris is optional at the schema level so that a missing list is
    reported with the same error code as any other malformed list.
    """

    playlist_id: str
    track_uris: list[str] | None = None

