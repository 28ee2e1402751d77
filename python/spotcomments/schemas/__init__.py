"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from spotcomments.schemas.auth import (
    DevLoginOut,
    DevLoginRequest,
    ExchangeOut,
    ExchangeRequest,
    UserProfileOut,
)
from spotcomments.schemas.comments import (
    CommentListItem,
    CommentOut,
    CommentStatsOut,
    CreateCommentRequest,
    DeleteCommentOut,
    TrackCountsRequest,
)

__all__ = [
    # Auth
    "DevLoginOut",
    "DevLoginRequest",
    "ExchangeOut",
    "ExchangeRequest",
    "UserProfileOut",
    # Comments
    "CommentListItem",
    "CommentOut",
    "CommentStatsOut",
    "CreateCommentRequest",
    "DeleteCommentOut",
    "TrackCountsRequest",
]
