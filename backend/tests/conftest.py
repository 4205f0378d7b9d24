"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Database:
---------
Every test gets its own SQLite database file under ``tmp_path`` with
NullPool and foreign keys on. Each session is therefore a separate client
of the file, so concurrency tests contend the way real clients do.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- pytest-asyncio: https://pytest-asyncio.readthedocs.io/en/latest/
"""

import os

os.environ.setdefault("APP_ENV", "testing")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import mediahub.models  # noqa: F401  (registers every table)
from mediahub.core.logging import setup_logging
from mediahub.db.base import Base
from mediahub.db.session import create_engine, create_session_factory
from mediahub.models import Music, Photo, Playlist, Studio, User, Video
from mediahub.services import AccountService, MediaService

setup_logging()


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a per-test database engine with every table created.
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'mediahub-test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (for multi-session tests)."""
    return create_session_factory(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a database session for each test.

    Tests commit freely; the database file is thrown away afterwards.
    """
    async with session_factory() as session:
        yield session


# ================================
# Sample Data
# ================================

@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_user_data() -> dict:
    """Sample account data. Credentials are opaque pre-derived strings."""
    return {
        "email": "alice@example.com",
        "pin": "pin$argon2$abc",
        "password_hash": "$argon2id$v=19$m=65536,t=3,p=4$c2FsdA$aGFzaA",
        "account_type": "WATCHER",
        "channel": "MOBILE",
        "phone_number": "+15550001111",
    }


def _asset_data(title: str) -> dict:
    return {
        "url": f"https://cdn.example.com/{title}",
        "title": title,
        "file_size": 4_096_000,
        "format": "bin",
        "mime_type": "application/octet-stream",
        "storage_path": f"media/{title}",
        "storage_provider": "s3",
        "hosting_location": "eu-west-1",
        "checksum": "sha256:0f1e2d",
    }


@pytest.fixture
def sample_music_data() -> dict:
    return {
        **_asset_data("night-drive"),
        "format": "mp3",
        "mime_type": "audio/mpeg",
        "artist": "The Signals",
        "album": "Late Hours",
        "genre": "synthwave",
        "duration": 241,
        "available_formats": ["mp3", "flac"],
    }


@pytest.fixture
def sample_photo_data() -> dict:
    return {
        **_asset_data("harbour"),
        "format": "jpeg",
        "mime_type": "image/jpeg",
        "height": 1080,
        "width": 1920,
    }


@pytest.fixture
def sample_video_data() -> dict:
    return {
        **_asset_data("launch"),
        "format": "mp4",
        "mime_type": "video/mp4",
        "duration": 95,
        "resolution": "1920x1080",
        "codec": "h264",
        "frame_rate": 29.97,
    }


# ================================
# Entity Fixtures
# ================================

@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, sample_user_data: dict) -> User:
    """A committed watcher account."""
    user = await AccountService(db_session).create_user(sample_user_data)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_studio(db_session: AsyncSession, test_user: User) -> Studio:
    """A committed studio owned by ``test_user``."""
    studio = await AccountService(db_session).create_studio({
        "user_id": test_user.id,
        "name": "North Light",
        "description": "Field recordings and short films",
    })
    await db_session.commit()
    return studio


@pytest_asyncio.fixture
async def test_playlist(db_session: AsyncSession, test_studio: Studio) -> Playlist:
    """A committed, empty playlist of ``test_studio``."""
    playlist = await MediaService(db_session).create_playlist({
        "studio_id": test_studio.id,
        "title": "Spring Sessions",
    })
    await db_session.commit()
    return playlist


@pytest_asyncio.fixture
async def test_music(db_session: AsyncSession, test_playlist: Playlist, sample_music_data: dict) -> Music:
    music = await MediaService(db_session).create_asset(
        "music", {**sample_music_data, "playlist_id": test_playlist.id}
    )
    await db_session.commit()
    return music


@pytest_asyncio.fixture
async def test_photo(db_session: AsyncSession, test_playlist: Playlist, sample_photo_data: dict) -> Photo:
    photo = await MediaService(db_session).create_asset(
        "photo", {**sample_photo_data, "playlist_id": test_playlist.id}
    )
    await db_session.commit()
    return photo


@pytest_asyncio.fixture
async def test_video(db_session: AsyncSession, test_playlist: Playlist, sample_video_data: dict) -> Video:
    video = await MediaService(db_session).create_asset(
        "video", {**sample_video_data, "playlist_id": test_playlist.id}
    )
    await db_session.commit()
    return video


@pytest.fixture
def past(now: datetime) -> datetime:
    return now - timedelta(days=1)


@pytest.fixture
def future(now: datetime) -> datetime:
    return now + timedelta(days=1)
