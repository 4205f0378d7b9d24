"""
Tests for media models (Music, Photo, Video, Playlist) and access evaluation.

This test module verifies:
1. Kind tags and model resolution
2. Column validation (required text, non-negative sizes, tag sets)
3. Lifecycle transitions (archive, soft delete, terminal deleted state)
4. Content replacement and version bumps
5. Access evaluation (status, DRM licence, region, mode)
6. Persistence of defaults and CHECK constraints
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from mediahub.core.exceptions import InvalidStateError, ValidationError
from mediahub.models import (
    AccessMode,
    MediaKind,
    MediaStatus,
    Music,
    Photo,
    Video,
    access_denial_reason,
    evaluate_access,
    media_model,
)


def make_music(**overrides) -> Music:
    fields = {
        "url": "https://cdn.example.com/track",
        "title": "Track",
        "file_size": 1024,
        "format": "mp3",
        "mime_type": "audio/mpeg",
        "storage_path": "media/track.mp3",
        "storage_provider": "s3",
        "hosting_location": "eu-west-1",
        "artist": "Someone",
        "duration": 200,
    }
    fields.update(overrides)
    return Music(**fields)


class TestMediaKinds:
    """Test the explicit kind tags."""

    def test_each_model_carries_its_kind(self):
        assert Music.kind == MediaKind.MUSIC
        assert Photo.kind == MediaKind.PHOTO
        assert Video.kind == MediaKind.VIDEO

    @pytest.mark.parametrize("kind, model", [("music", Music), ("photo", Photo), (MediaKind.VIDEO, Video)])
    def test_media_model_resolves_kind(self, kind, model):
        assert media_model(kind) is model

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            media_model("podcast")

    def test_each_kind_has_its_own_table(self):
        assert {Music.__tablename__, Photo.__tablename__, Video.__tablename__} == {
            "music",
            "photos",
            "videos",
        }


class TestMediaValidation:
    """Test column validators."""

    @pytest.mark.parametrize("field", ["url", "title", "storage_path", "storage_provider"])
    def test_required_text_cannot_be_blank(self, field):
        with pytest.raises(ValidationError):
            make_music(**{field: "  "})

    def test_negative_file_size_rejected(self):
        with pytest.raises(ValidationError):
            make_music(file_size=-1)

    def test_invalid_status_rejected(self):
        with pytest.raises(ValidationError):
            make_music(status="published")

    def test_status_string_coerced_to_enum(self):
        assert make_music(status="archived").status is MediaStatus.ARCHIVED

    def test_available_formats_are_a_set(self):
        music = make_music(available_formats=["MP3", "flac", "mp3", " "])
        assert music.available_formats == ["flac", "mp3"]

    def test_region_restrictions_are_upper_cased(self):
        music = make_music(region_restrictions=["de", "FR", "de"])
        assert music.region_restrictions == ["DE", "FR"]

    @pytest.mark.parametrize("field", ["view_count", "download_count", "version"])
    def test_counters_cannot_decrease(self, field):
        music = make_music(**{field: 5})
        with pytest.raises(InvalidStateError):
            setattr(music, field, 4)
        assert getattr(music, field) == 5

    @pytest.mark.parametrize("field", ["view_count", "download_count", "version"])
    def test_counters_can_grow(self, field):
        music = make_music(**{field: 5})
        setattr(music, field, 6)
        assert getattr(music, field) == 6

    def test_negative_view_count_rejected(self):
        with pytest.raises(ValidationError):
            make_music(view_count=-1)

    def test_version_starts_at_one(self):
        with pytest.raises(ValidationError):
            make_music(version=0)


class TestMediaLifecycle:
    """Test status transitions."""

    def test_new_asset_is_active(self):
        music = make_music()
        assert music.lifecycle_status == MediaStatus.ACTIVE
        assert music.archived_at is None
        assert music.deleted_at is None

    def test_archive_sets_archived_at(self, now):
        music = make_music()
        music.archive(now)
        assert music.status == MediaStatus.ARCHIVED
        assert music.archived_at == now

    def test_archive_twice_keeps_first_timestamp(self, now):
        music = make_music()
        music.archive(now)
        music.archive(now + timedelta(hours=1))
        assert music.archived_at == now

    def test_soft_delete_from_active(self, now):
        music = make_music()
        music.soft_delete(now)
        assert music.is_deleted
        assert music.deleted_at == now
        assert music.archived_at is None

    def test_soft_delete_from_archived(self, now):
        music = make_music()
        music.archive(now)
        music.soft_delete(now + timedelta(days=1))
        assert music.status == MediaStatus.DELETED
        assert music.archived_at == now

    def test_deleted_is_terminal(self, now):
        music = make_music()
        music.soft_delete(now)

        with pytest.raises(InvalidStateError):
            music.archive(now)
        with pytest.raises(InvalidStateError):
            music.soft_delete(now)
        with pytest.raises(InvalidStateError):
            music.replace_content(url="https://cdn.example.com/v2")

        assert music.status == MediaStatus.DELETED
        assert music.deleted_at == now

    def test_deleted_cannot_be_reassigned_directly(self, now):
        music = make_music()
        music.soft_delete(now)

        with pytest.raises(InvalidStateError):
            music.status = MediaStatus.ACTIVE
        with pytest.raises(InvalidStateError):
            music.status = "archived"

        assert music.status == MediaStatus.DELETED

    def test_archived_can_be_reactivated(self, now):
        music = make_music()
        music.archive(now)
        music.status = MediaStatus.ACTIVE
        assert music.status == MediaStatus.ACTIVE


class TestContentReplacement:
    """Test version bumps."""

    def test_replace_content_bumps_version_by_one(self):
        music = make_music(version=1)
        assert music.replace_content(storage_path="media/track-v2.mp3", file_size=2048) == 2
        assert music.version == 2
        assert music.storage_path == "media/track-v2.mp3"
        assert music.file_size == 2048

    def test_replace_content_keeps_unspecified_fields(self):
        music = make_music(version=3)
        music.replace_content(checksum="sha256:beef")
        assert music.version == 4
        assert music.url == "https://cdn.example.com/track"

    def test_replace_content_on_archived_asset(self, now):
        music = make_music(version=1)
        music.archive(now)
        music.replace_content(url="https://cdn.example.com/v2")
        assert music.version == 2


class TestAccessEvaluation:
    """Test evaluate_access / access_denial_reason."""

    def test_active_unrestricted_asset_streams(self, now):
        assert evaluate_access(make_music(), region="DE", now=now)

    def test_download_needs_download_allowed(self, now):
        music = make_music()
        assert access_denial_reason(music, mode=AccessMode.DOWNLOAD, now=now) == "download_not_allowed"

        music.download_allowed = True
        assert evaluate_access(music, mode="download", now=now)

    def test_streaming_can_be_disabled(self, now):
        music = make_music(streaming_allowed=False)
        assert access_denial_reason(music, now=now) == "streaming_not_allowed"

    def test_archived_and_deleted_assets_are_inaccessible(self, now):
        archived = make_music()
        archived.archive(now)
        deleted = make_music()
        deleted.soft_delete(now)

        assert access_denial_reason(archived, now=now) == "not_active"
        assert access_denial_reason(deleted, now=now) == "not_active"

    def test_region_restriction(self, now):
        music = make_music(region_restrictions=["CN"])
        assert access_denial_reason(music, region="cn", now=now) == "region_restricted"
        assert evaluate_access(music, region="US", now=now)
        assert evaluate_access(music, now=now)

    def test_expired_drm_licence_blocks_every_mode(self, now, past):
        music = make_music(
            drm_protected=True,
            license_expiry_date=past,
            streaming_allowed=True,
            download_allowed=True,
        )
        assert not evaluate_access(music, mode=AccessMode.STREAM, now=now)
        assert not evaluate_access(music, mode=AccessMode.DOWNLOAD, now=now)
        assert access_denial_reason(music, now=now) == "license_expired"

    def test_valid_drm_licence(self, now, future):
        music = make_music(drm_protected=True, license_expiry_date=future)
        assert evaluate_access(music, now=now)

    def test_expiry_ignored_without_drm(self, now, past):
        music = make_music(drm_protected=False, license_expiry_date=past)
        assert evaluate_access(music, now=now)

    def test_evaluation_does_not_mutate(self, now, past):
        music = make_music(drm_protected=True, license_expiry_date=past)
        before = music.dict()
        evaluate_access(music, region="DE", mode="download", now=now)
        assert music.dict() == before


@pytest.mark.asyncio
class TestMediaPersistence:
    """Test defaults and constraints at the database."""

    async def test_defaults_after_insert(self, db_session):
        photo = Photo(
            url="https://cdn.example.com/p.jpg",
            title="Harbour",
            file_size=0,
            format="jpeg",
            mime_type="image/jpeg",
            storage_path="media/p.jpg",
            storage_provider="s3",
            hosting_location="eu-west-1",
            height=10,
            width=20,
        )
        db_session.add(photo)
        await db_session.commit()

        result = await db_session.execute(select(Photo).where(Photo.id == photo.id))
        stored = result.scalar_one()
        assert stored.status == MediaStatus.ACTIVE
        assert stored.version == 1
        assert stored.view_count == 0
        assert stored.download_count == 0
        assert stored.drm_protected is False
        assert stored.streaming_allowed is True
        assert stored.download_allowed is False
        assert stored.created_at.tzinfo is not None
        assert stored.updated_at >= stored.created_at

    async def test_video_uploaded_at_defaults(self, db_session):
        video = Video(
            url="https://cdn.example.com/v.mp4",
            title="Launch",
            file_size=10,
            format="mp4",
            mime_type="video/mp4",
            storage_path="media/v.mp4",
            storage_provider="s3",
            hosting_location="eu-west-1",
            duration=5,
            resolution="1280x720",
        )
        db_session.add(video)
        await db_session.commit()
        assert video.uploaded_at is not None

    async def test_negative_counter_rejected_by_check_constraint(self, db_session, test_music):
        with pytest.raises(IntegrityError):
            await db_session.execute(
                text("UPDATE music SET view_count = -1 WHERE id = :id"),
                {"id": test_music.id.hex},
            )
        await db_session.rollback()

    async def test_updated_at_advances(self, db_session, test_music):
        created_at = test_music.created_at
        first_update = test_music.updated_at

        test_music.title = "Renamed"
        await db_session.commit()

        assert test_music.created_at == created_at
        assert test_music.updated_at >= first_update

    async def test_loaded_deleted_asset_stays_deleted(self, db_session, test_music, now):
        test_music.soft_delete(now)
        await db_session.commit()
        db_session.expunge_all()

        result = await db_session.execute(select(Music).where(Music.id == test_music.id))
        stored = result.scalar_one()
        with pytest.raises(InvalidStateError):
            stored.status = MediaStatus.ACTIVE
        assert stored.status == MediaStatus.DELETED
