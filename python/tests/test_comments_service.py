"""Tests for comment store access.

Covers:
- create trims text and enforces the 1..500 length rule
- track URI format rule on create and bulk counts
- list ordering, track filtering, pagination, is_owner annotation
- bulk counts grouping and argument limits
- stats aggregation
- owner-only delete
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from spotcomments.auth.middleware import Viewer
from spotcomments.db.models import Comment
from spotcomments.errors import ApiError, ApiErrorCode
from spotcomments.services import comments as comments_service
from tests.helpers import (
    OTHER_TRACK_URI,
    VALID_TRACK_URI,
    create_test_comment,
    create_test_user,
)

PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"


@pytest.fixture
def owner(db_session: Session) -> Viewer:
    user = create_test_user(db_session)
    return Viewer(user_id=user.id, external_subject_id=user.privy_user_id)


@pytest.fixture
def other(db_session: Session) -> Viewer:
    user = create_test_user(db_session)
    return Viewer(user_id=user.id, external_subject_id=user.privy_user_id)


class TestCreateComment:
    def test_create_then_list_includes_trimmed_text_once(self, db_session, owner):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="  great playlist \n"
        )

        listed = comments_service.list_comments(db_session, PLAYLIST_ID)

        matches = [c for c in listed if c.id == created.id]
        assert len(matches) == 1
        assert matches[0].text == "great playlist"
        assert created.text == "great playlist"
        assert created.track_uri is None

    def test_exactly_500_chars_accepted(self, db_session, owner):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="x" * 500
        )
        assert len(created.text) == 500

    def test_501_chars_rejected(self, db_session, owner):
        with pytest.raises(ApiError) as exc_info:
            comments_service.create_comment(
                db_session, owner, playlist_id=PLAYLIST_ID, text="x" * 501
            )
        assert exc_info.value.code == ApiErrorCode.E_COMMENT_TEXT_INVALID
        assert exc_info.value.status_code == 400

    def test_length_checked_after_trim(self, db_session, owner):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="  " + "y" * 500 + "  "
        )
        assert created.text == "y" * 500

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_rejected(self, db_session, owner, text):
        with pytest.raises(ApiError) as exc_info:
            comments_service.create_comment(db_session, owner, playlist_id=PLAYLIST_ID, text=text)
        assert exc_info.value.code == ApiErrorCode.E_COMMENT_TEXT_INVALID

    def test_bad_track_uri_rejected(self, db_session, owner):
        with pytest.raises(ApiError) as exc_info:
            comments_service.create_comment(
                db_session, owner, playlist_id=PLAYLIST_ID, text="hi", track_uri="bad"
            )
        assert exc_info.value.code == ApiErrorCode.E_INVALID_TRACK_URI
        assert exc_info.value.status_code == 400

    def test_track_uri_with_20_char_id_accepted(self, db_session, owner):
        track_uri = "spotify:track:" + "a" * 20
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="hi", track_uri=track_uri
        )
        assert created.track_uri == track_uri

    def test_track_uri_too_short_rejected(self, db_session, owner):
        with pytest.raises(ApiError):
            comments_service.create_comment(
                db_session,
                owner,
                playlist_id=PLAYLIST_ID,
                text="hi",
                track_uri="spotify:track:abc",
            )

    def test_empty_track_uri_is_playlist_level(self, db_session, owner):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="hi", track_uri=""
        )
        assert created.track_uri is None

    def test_missing_playlist_rejected(self, db_session, owner):
        with pytest.raises(ApiError) as exc_info:
            comments_service.create_comment(db_session, owner, playlist_id="", text="hi")
        assert exc_info.value.code == ApiErrorCode.E_PLAYLIST_ID_REQUIRED

    def test_anonymous_rejected_before_store_access(self, db_session):
        with pytest.raises(ApiError) as exc_info:
            comments_service.create_comment(db_session, None, playlist_id=PLAYLIST_ID, text="hi")
        assert exc_info.value.status_code == 401
        assert db_session.scalar(select(func.count(Comment.id))) == 0

    def test_owner_recorded(self, db_session, owner):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="mine"
        )
        assert db_session.get(Comment, created.id).user_id == owner.user_id


class TestListComments:
    def test_missing_playlist_rejected(self, db_session):
        for playlist_id in (None, "", "   "):
            with pytest.raises(ApiError) as exc_info:
                comments_service.list_comments(db_session, playlist_id)
            assert exc_info.value.code == ApiErrorCode.E_PLAYLIST_ID_REQUIRED

    def test_oldest_first(self, db_session, owner):
        for text in ("first", "second", "third"):
            comments_service.create_comment(db_session, owner, playlist_id=PLAYLIST_ID, text=text)

        listed = comments_service.list_comments(db_session, PLAYLIST_ID)

        assert [c.text for c in listed] == ["first", "second", "third"]

    def test_playlist_level_excludes_track_comments(self, db_session):
        create_test_comment(db_session, PLAYLIST_ID, "playlist-level")
        create_test_comment(db_session, PLAYLIST_ID, "track-level", track_uri=VALID_TRACK_URI)

        listed = comments_service.list_comments(db_session, PLAYLIST_ID)

        assert [c.text for c in listed] == ["playlist-level"]

    def test_track_filter(self, db_session):
        create_test_comment(db_session, PLAYLIST_ID, "playlist-level")
        create_test_comment(db_session, PLAYLIST_ID, "on track", track_uri=VALID_TRACK_URI)
        create_test_comment(db_session, PLAYLIST_ID, "other track", track_uri=OTHER_TRACK_URI)

        listed = comments_service.list_comments(db_session, PLAYLIST_ID, VALID_TRACK_URI)

        assert [c.text for c in listed] == ["on track"]

    def test_other_playlists_excluded(self, db_session):
        create_test_comment(db_session, "other-playlist", "elsewhere")
        assert comments_service.list_comments(db_session, PLAYLIST_ID) == []

    def test_limit_and_offset(self, db_session):
        for i in range(5):
            create_test_comment(db_session, PLAYLIST_ID, f"c{i}")

        page = comments_service.list_comments(db_session, PLAYLIST_ID, limit=2, offset=1)

        assert [c.text for c in page] == ["c1", "c2"]

    def test_limit_clamped(self, db_session):
        for i in range(3):
            create_test_comment(db_session, PLAYLIST_ID, f"c{i}")

        assert len(comments_service.list_comments(db_session, PLAYLIST_ID, limit=0)) == 1
        assert len(comments_service.list_comments(db_session, PLAYLIST_ID, limit=10_000)) == 3
        assert comments_service.clamp_limit(10_000) == comments_service.MAX_LIST_LIMIT

    def test_negative_offset_rejected(self, db_session):
        with pytest.raises(ApiError) as exc_info:
            comments_service.list_comments(db_session, PLAYLIST_ID, offset=-1)
        assert exc_info.value.code == ApiErrorCode.E_INVALID_REQUEST

    def test_is_owner_annotation(self, db_session, owner, other):
        create_test_comment(db_session, PLAYLIST_ID, "owned", user_id=owner.user_id)
        create_test_comment(db_session, PLAYLIST_ID, "legacy", user_id=None)

        anonymous = comments_service.list_comments(db_session, PLAYLIST_ID)
        as_owner = comments_service.list_comments(db_session, PLAYLIST_ID, viewer=owner)
        as_other = comments_service.list_comments(db_session, PLAYLIST_ID, viewer=other)

        assert [c.is_owner for c in anonymous] == [False, False]
        assert [c.is_owner for c in as_owner] == [True, False]
        assert [c.is_owner for c in as_other] == [False, False]


class TestTrackCounts:
    def test_counts_grouped_and_missing_tracks_absent(self, db_session):
        create_test_comment(db_session, PLAYLIST_ID, "a", track_uri=VALID_TRACK_URI)
        create_test_comment(db_session, PLAYLIST_ID, "b", track_uri=VALID_TRACK_URI)
        create_test_comment(db_session, "other-playlist", "c", track_uri=OTHER_TRACK_URI)

        counts = comments_service.get_track_counts(
            db_session, PLAYLIST_ID, [VALID_TRACK_URI, OTHER_TRACK_URI]
        )

        assert counts == {VALID_TRACK_URI: 2}

    def test_empty_list_returns_empty_mapping(self, db_session):
        assert comments_service.get_track_counts(db_session, PLAYLIST_ID, []) == {}

    def test_missing_list_rejected(self, db_session):
        with pytest.raises(ApiError) as exc_info:
            comments_service.get_track_counts(db_session, PLAYLIST_ID, None)
        assert exc_info.value.status_code == 400

    def test_missing_playlist_rejected(self, db_session):
        with pytest.raises(ApiError) as exc_info:
            comments_service.get_track_counts(db_session, "", [VALID_TRACK_URI])
        assert exc_info.value.status_code == 400

    def test_over_100_rejected(self, db_session):
        uris = [f"spotify:track:{i:022d}" for i in range(101)]
        with pytest.raises(ApiError) as exc_info:
            comments_service.get_track_counts(db_session, PLAYLIST_ID, uris)
        assert exc_info.value.code == ApiErrorCode.E_TOO_MANY_TRACK_URIS

    def test_exactly_100_accepted(self, db_session):
        uris = [f"spotify:track:{i:022d}" for i in range(100)]
        assert comments_service.get_track_counts(db_session, PLAYLIST_ID, uris) == {}

    def test_malformed_entries_listed(self, db_session):
        with pytest.raises(ApiError) as exc_info:
            comments_service.get_track_counts(
                db_session, PLAYLIST_ID, [VALID_TRACK_URI, "bad", "spotify:album:1234567890"]
            )
        assert exc_info.value.code == ApiErrorCode.E_INVALID_TRACK_URI
        assert "bad" in exc_info.value.message
        assert "spotify:album:1234567890" in exc_info.value.message
        assert VALID_TRACK_URI not in exc_info.value.message


class TestPlaylistStats:
    def test_empty_playlist(self, db_session):
        stats = comments_service.get_playlist_stats(db_session, PLAYLIST_ID)

        assert stats.total_comments == 0
        assert stats.tracks_with_comments == 0
        assert stats.first_comment is None
        assert stats.latest_comment is None

    def test_aggregates(self, db_session, owner):
        first = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="one"
        )
        comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="two", track_uri=VALID_TRACK_URI
        )
        comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="three", track_uri=VALID_TRACK_URI
        )
        last = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="four", track_uri=OTHER_TRACK_URI
        )

        stats = comments_service.get_playlist_stats(db_session, PLAYLIST_ID)

        assert stats.total_comments == 4
        assert stats.tracks_with_comments == 2
        assert stats.first_comment is not None
        assert stats.latest_comment is not None
        assert stats.first_comment <= stats.latest_comment
        assert first.created_at <= last.created_at


class TestDeleteComment:
    def test_non_owner_forbidden(self, db_session, owner, other):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="mine"
        )

        with pytest.raises(ApiError) as exc_info:
            comments_service.delete_comment(db_session, other, created.id)

        assert exc_info.value.code == ApiErrorCode.E_FORBIDDEN
        assert exc_info.value.status_code == 403
        assert len(comments_service.list_comments(db_session, PLAYLIST_ID)) == 1

    def test_owner_deletes_and_comment_disappears(self, db_session, owner):
        created = comments_service.create_comment(
            db_session, owner, playlist_id=PLAYLIST_ID, text="mine"
        )

        result = comments_service.delete_comment(db_session, owner, created.id)

        assert result.deleted_id == created.id
        assert result.message == "Comment deleted successfully"
        assert comments_service.list_comments(db_session, PLAYLIST_ID) == []

    def test_missing_comment_not_found(self, db_session, owner):
        with pytest.raises(ApiError) as exc_info:
            comments_service.delete_comment(db_session, owner, 999_999)
        assert exc_info.value.code == ApiErrorCode.E_COMMENT_NOT_FOUND
        assert exc_info.value.status_code == 404

    def test_ownerless_comment_forbidden(self, db_session, owner):
        legacy = create_test_comment(db_session, PLAYLIST_ID, "legacy", user_id=None)

        with pytest.raises(ApiError) as exc_info:
            comments_service.delete_comment(db_session, owner, legacy.id)
        assert exc_info.value.status_code == 403

    def test_anonymous_unauthenticated(self, db_session, owner):
        comment = create_test_comment(db_session, PLAYLIST_ID, "x", user_id=owner.user_id)
        with pytest.raises(ApiError) as exc_info:
            comments_service.delete_comment(db_session, None, comment.id)
        assert exc_info.value.status_code == 401
