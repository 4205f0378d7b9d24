"""
Tests for MediaService.

This test module verifies:
1. Asset creation per kind, with schema validation
2. Lifecycle operations through the service (archive, delete, replace)
3. Atomic view/download counters, including 100 concurrent increments
4. Stored-asset access checks
5. Playlist operations
"""

import asyncio
import uuid

import pytest

from mediahub.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from mediahub.db.session import session_scope
from mediahub.models import MediaKind, MediaStatus, Music, Photo, Video
from mediahub.services import MediaService


@pytest.mark.asyncio
class TestAssetCreation:
    """Test create_asset for every kind."""

    async def test_create_music(self, db_session, sample_music_data):
        music = await MediaService(db_session).create_asset("music", sample_music_data)
        await db_session.commit()

        assert isinstance(music, Music)
        assert music.kind == MediaKind.MUSIC
        assert music.status == MediaStatus.ACTIVE
        assert music.version == 1
        assert music.available_formats == ["flac", "mp3"]
        assert music.playlist_id is None

    async def test_create_photo_and_video(self, db_session, sample_photo_data, sample_video_data):
        service = MediaService(db_session)
        photo = await service.create_asset(MediaKind.PHOTO, sample_photo_data)
        video = await service.create_asset("video", sample_video_data)

        assert isinstance(photo, Photo)
        assert (photo.width, photo.height) == (1920, 1080)
        assert isinstance(video, Video)
        assert video.frame_rate == pytest.approx(29.97)

    async def test_create_in_playlist(self, db_session, test_playlist, sample_music_data):
        music = await MediaService(db_session).create_asset(
            "music", {**sample_music_data, "playlist_id": test_playlist.id}
        )
        assert music.playlist_id == test_playlist.id

    async def test_unknown_playlist_rejected(self, db_session, sample_music_data):
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_asset(
                "music", {**sample_music_data, "playlist_id": uuid.uuid4()}
            )

    async def test_kind_specific_fields_required(self, db_session, sample_music_data):
        data = dict(sample_music_data)
        del data["artist"]
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_asset("music", data)

    async def test_negative_file_size_rejected(self, db_session, sample_photo_data):
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_asset("photo", {**sample_photo_data, "file_size": -5})

    async def test_fields_of_another_kind_rejected(self, db_session, sample_photo_data):
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_asset("photo", {**sample_photo_data, "artist": "x"})

    async def test_cannot_create_deleted_asset(self, db_session, sample_photo_data):
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_asset("photo", {**sample_photo_data, "status": "deleted"})

    async def test_get_asset_wrong_kind(self, db_session, test_music):
        with pytest.raises(NotFoundError):
            await MediaService(db_session).get_asset("video", test_music.id)


@pytest.mark.asyncio
class TestAssetLifecycle:
    """Test lifecycle operations through the service."""

    async def test_archive_then_delete(self, db_session, test_music, now, future):
        service = MediaService(db_session)
        await service.archive_asset("music", test_music.id, at=now)
        await service.delete_asset("music", test_music.id, at=future)
        await db_session.commit()

        assert test_music.status == MediaStatus.DELETED
        assert test_music.archived_at == now
        assert test_music.deleted_at == future

    async def test_operations_on_deleted_asset_fail(self, db_session, test_video, now):
        service = MediaService(db_session)
        await service.delete_asset("video", test_video.id, at=now)

        with pytest.raises(InvalidStateError):
            await service.archive_asset("video", test_video.id)
        with pytest.raises(InvalidStateError):
            await service.replace_content("video", test_video.id, {"url": "https://cdn.example.com/v2"})
        assert test_video.version == 1

    async def test_replace_content_bumps_version(self, session_factory, test_photo):
        async with session_scope(session_factory) as session:
            photo = await MediaService(session).replace_content(
                "photo",
                test_photo.id,
                {"storage_path": "media/harbour-v2", "file_size": 5_000_000, "checksum": "sha256:aa"},
            )
            assert photo.version == 2

        async with session_factory() as session:
            stored = await MediaService(session).get_asset("photo", test_photo.id)
            assert stored.version == 2
            assert stored.storage_path == "media/harbour-v2"
            assert stored.file_size == 5_000_000

    async def test_replace_content_needs_a_field(self, db_session, test_photo):
        with pytest.raises(ValidationError):
            await MediaService(db_session).replace_content("photo", test_photo.id, {})


@pytest.mark.asyncio
class TestCounters:
    """Test atomic counters."""

    async def test_increment_returns_new_value(self, db_session, test_music, now):
        service = MediaService(db_session)
        assert await service.increment_view_count("music", test_music.id, at=now) == 1
        assert await service.increment_view_count("music", test_music.id, at=now) == 2
        assert await service.increment_download_count("music", test_music.id, at=now) == 1

        # The loaded instance follows the database
        assert test_music.view_count == 2
        assert test_music.download_count == 1
        assert test_music.last_accessed_at == now

    async def test_increment_unknown_asset(self, db_session):
        with pytest.raises(NotFoundError):
            await MediaService(db_session).increment_view_count("music", uuid.uuid4())

    async def test_concurrent_view_increments_are_not_lost(self, session_factory, test_music):
        async def view():
            async with session_scope(session_factory) as session:
                return await MediaService(session).increment_view_count("music", test_music.id)

        results = await asyncio.gather(*(view() for _ in range(100)))

        assert sorted(results) == list(range(1, 101))
        async with session_factory() as session:
            stored = await MediaService(session).get_asset("music", test_music.id)
            assert stored.view_count == 100
            assert stored.last_accessed_at is not None


@pytest.mark.asyncio
class TestAccessChecks:
    """Test check_access on stored assets."""

    async def test_expired_drm_denied(self, db_session, test_playlist, sample_video_data, now, past):
        service = MediaService(db_session)
        video = await service.create_asset("video", {
            **sample_video_data,
            "drm_protected": True,
            "drm_type": "widevine",
            "license_expiry_date": past,
            "download_allowed": True,
        })
        await db_session.commit()

        assert await service.check_access("video", video.id, region="US", mode="stream", now=now) is False
        assert await service.check_access("video", video.id, mode="download", now=now) is False

    async def test_region_restricted(self, db_session, sample_music_data, now):
        service = MediaService(db_session)
        music = await service.create_asset("music", {**sample_music_data, "region_restrictions": ["kp"]})

        assert await service.check_access("music", music.id, region="KP", now=now) is False
        assert await service.check_access("music", music.id, region="NO", now=now) is True


@pytest.mark.asyncio
class TestPlaylists:
    """Test playlist operations."""

    async def test_create_playlist_for_unknown_studio(self, db_session):
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_playlist({"title": "x", "studio_id": uuid.uuid4()})

    async def test_playlist_title_required(self, db_session):
        with pytest.raises(ValidationError):
            await MediaService(db_session).create_playlist({"title": "   "})

    async def test_items_across_kinds(self, session_factory, test_playlist, test_music, test_photo, test_video):
        async with session_factory() as session:
            items = await MediaService(session).list_playlist_items(test_playlist.id)

        assert {item.id for item in items} == {test_music.id, test_photo.id, test_video.id}
        assert {item.kind for item in items} == {MediaKind.MUSIC, MediaKind.PHOTO, MediaKind.VIDEO}

    async def test_add_and_remove(self, db_session, test_playlist, sample_photo_data):
        service = MediaService(db_session)
        photo = await service.create_asset("photo", sample_photo_data)

        await service.add_to_playlist(test_playlist.id, "photo", photo.id)
        assert photo.playlist_id == test_playlist.id
        assert [item.id for item in await service.list_playlist_items(test_playlist.id)] == [photo.id]

        await service.remove_from_playlist(test_playlist.id, "photo", photo.id)
        assert photo.playlist_id is None
        assert await service.list_playlist_items(test_playlist.id) == []

        # The asset itself survives removal
        assert (await service.get_asset("photo", photo.id)).id == photo.id

    async def test_move_between_playlists(self, db_session, test_playlist, test_music):
        service = MediaService(db_session)
        other = await service.create_playlist({"title": "B-sides"})

        await service.add_to_playlist(other.id, "music", test_music.id)

        assert test_music.playlist_id == other.id
        assert await service.list_playlist_items(test_playlist.id) == []

    async def test_remove_from_wrong_playlist(self, db_session, test_music):
        service = MediaService(db_session)
        other = await service.create_playlist({"title": "Other"})
        with pytest.raises(ValidationError):
            await service.remove_from_playlist(other.id, "music", test_music.id)

    async def test_deleted_asset_cannot_be_added(self, db_session, test_playlist, sample_photo_data, now):
        service = MediaService(db_session)
        photo = await service.create_asset("photo", sample_photo_data)
        await service.delete_asset("photo", photo.id, at=now)

        with pytest.raises(InvalidStateError):
            await service.add_to_playlist(test_playlist.id, "photo", photo.id)

    async def test_delete_playlist_deletes_media(self, session_factory, test_playlist, test_music, test_photo):
        async with session_scope(session_factory) as session:
            await MediaService(session).delete_playlist(test_playlist.id)

        async with session_factory() as session:
            service = MediaService(session)
            with pytest.raises(NotFoundError):
                await service.get_playlist(test_playlist.id)
            with pytest.raises(NotFoundError):
                await service.get_asset("music", test_music.id)
            with pytest.raises(NotFoundError):
                await service.get_asset("photo", test_photo.id)
