"""initial_schema_accounts_media_interactions_notifications

Revision ID: 5a1c2e7d9b30
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5a1c2e7d9b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MEDIA_STATUSES = ('active', 'archived', 'deleted')


def _in(column: str, values: Sequence[str]) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def _common_columns() -> list:
    return [
        sa.Column('id', sa.Uuid(), nullable=False, comment='UUID4 primary key'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was created (UTC)'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when record was last updated (UTC)'),
    ]


def _asset_columns(table: str) -> list:
    """Columns and constraints every media table shares."""
    return [
        *_common_columns(),
        sa.Column('url', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('available_formats', sa.JSON(), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=False, comment='Bytes'),
        sa.Column('format', sa.String(length=50), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('storage_path', sa.String(length=500), nullable=False),
        sa.Column('checksum', sa.String(length=255), nullable=True),
        sa.Column('storage_provider', sa.String(length=50), nullable=False),
        sa.Column('hosting_location', sa.String(length=100), nullable=False),
        sa.Column('view_count', sa.BigInteger(), nullable=False),
        sa.Column('download_count', sa.BigInteger(), nullable=False),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('drm_protected', sa.Boolean(), nullable=False),
        sa.Column('drm_type', sa.String(length=50), nullable=True),
        sa.Column('license_expiry_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('region_restrictions', sa.JSON(), nullable=True),
        sa.Column('download_allowed', sa.Boolean(), nullable=False),
        sa.Column('streaming_allowed', sa.Boolean(), nullable=False),
        sa.Column('playlist_id', sa.Uuid(), nullable=True),
        sa.CheckConstraint(_in('status', MEDIA_STATUSES), name=op.f(f'ck_{table}_mediastatus')),
        sa.CheckConstraint('file_size >= 0', name=op.f(f'ck_{table}_file_size_non_negative')),
        sa.CheckConstraint('view_count >= 0', name=op.f(f'ck_{table}_view_count_non_negative')),
        sa.CheckConstraint('download_count >= 0', name=op.f(f'ck_{table}_download_count_non_negative')),
        sa.CheckConstraint('version >= 1', name=op.f(f'ck_{table}_version_positive')),
        sa.ForeignKeyConstraint(['playlist_id'], ['playlists.id'], name=op.f(f'fk_{table}_playlist_id_playlists'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f(f'pk_{table}')),
    ]


def _asset_indexes(table: str) -> None:
    op.create_index(op.f(f'ix_{table}_status'), table, ['status'], unique=False)
    op.create_index(op.f(f'ix_{table}_playlist_id'), table, ['playlist_id'], unique=False)


def upgrade() -> None:
    """
    Create the full schema.

    Tables, in dependency order:
    1. users, devices - accounts and push targets
    2. studios - publishing identities
    3. playlists, music, photos, videos - media
    4. media_interactions - append-only interaction ledger
    5. notifications - compressed outbound messages
    """

    # ================================
    # Accounts
    # ================================
    op.create_table(
        'users',
        *_common_columns(),
        sa.Column('account_type', sa.String(length=20), nullable=True, comment='WATCHER or STUDIO'),
        sa.Column('channel', sa.String(length=20), nullable=True, comment='Signup source (WEB, MOBILE, WAITLIST, CAMPAIGN)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Primary email address. Must be unique.'),
        sa.Column('secondary_email', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=50), nullable=True, comment='Primary phone number. Unique when present.'),
        sa.Column('secondary_phone_number', sa.String(length=50), nullable=True),
        sa.Column('validated_phone_number', sa.Boolean(), nullable=False),
        sa.Column('validated_email', sa.Boolean(), nullable=False),
        sa.Column('pin', sa.String(length=128), nullable=False, comment='Opaque PIN secret'),
        sa.Column('password_hash', sa.String(length=255), nullable=False, comment='Opaque password hash'),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.CheckConstraint(_in('account_type', ('WATCHER', 'STUDIO')), name=op.f('ck_users_accounttype')),
        sa.CheckConstraint(_in('channel', ('WEB', 'MOBILE', 'WAITLIST', 'CAMPAIGN')), name=op.f('ck_users_signupchannel')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('phone_number', name=op.f('uq_users_phone_number')),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'devices',
        *_common_columns(),
        sa.Column('name', sa.String(length=255), nullable=True, comment='Human-readable device name'),
        sa.Column('fcm_token', sa.String(length=255), nullable=True, comment='Push token, stored as issued'),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('last_logged_in_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_logged_out_time', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_devices_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_devices')),
    )
    op.create_index(op.f('ix_devices_user_id'), 'devices', ['user_id'], unique=False)

    op.create_table(
        'studios',
        *_common_columns(),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('picture_url', sa.String(length=255), nullable=True),
        sa.CheckConstraint(
            _in('status', ('IN-REVIEW', 'APPROVED', 'REJECTED', 'SUSPENDED')),
            name=op.f('ck_studios_studiostatus'),
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_studios_user_id_users'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_studios')),
    )
    op.create_index(op.f('ix_studios_user_id'), 'studios', ['user_id'], unique=False)

    # ================================
    # Media
    # ================================
    op.create_table(
        'playlists',
        *_common_columns(),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('studio_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['studio_id'], ['studios.id'], name=op.f('fk_playlists_studio_id_studios'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_playlists')),
    )
    op.create_index(op.f('ix_playlists_studio_id'), 'playlists', ['studio_id'], unique=False)

    op.create_table(
        'music',
        *_asset_columns('music'),
        sa.Column('artist', sa.String(length=255), nullable=False),
        sa.Column('album', sa.String(length=255), nullable=True),
        sa.Column('genre', sa.String(length=100), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=False, comment='Seconds'),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
    )
    _asset_indexes('music')

    op.create_table(
        'photos',
        *_asset_columns('photos'),
        sa.Column('height', sa.Integer(), nullable=False, comment='Pixels'),
        sa.Column('width', sa.Integer(), nullable=False, comment='Pixels'),
        sa.Column('captured_at', sa.DateTime(timezone=True), nullable=True),
    )
    _asset_indexes('photos')

    op.create_table(
        'videos',
        *_asset_columns('videos'),
        sa.Column('duration', sa.Integer(), nullable=False, comment='Seconds'),
        sa.Column('resolution', sa.String(length=20), nullable=False),
        sa.Column('codec', sa.String(length=50), nullable=True),
        sa.Column('frame_rate', sa.Float(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
    )
    _asset_indexes('videos')

    # ================================
    # Interaction ledger
    # ================================
    single_target = ' + '.join(
        f'(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)'
        for column in ('music_id', 'photo_id', 'video_id', 'playlist_id')
    )
    op.create_table(
        'media_interactions',
        *_common_columns(),
        sa.Column('interaction_type', sa.String(length=20), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('music_id', sa.Uuid(), nullable=True),
        sa.Column('photo_id', sa.Uuid(), nullable=True),
        sa.Column('video_id', sa.Uuid(), nullable=True),
        sa.Column('playlist_id', sa.Uuid(), nullable=True),
        sa.CheckConstraint(f'{single_target} = 1', name=op.f('ck_media_interactions_single_target')),
        sa.CheckConstraint(
            _in('interaction_type', ('WATCHED', 'SEEN', 'PAID')),
            name=op.f('ck_media_interactions_interactiontype'),
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_media_interactions_user_id_users'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['music_id'], ['music.id'], name=op.f('fk_media_interactions_music_id_music'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['photo_id'], ['photos.id'], name=op.f('fk_media_interactions_photo_id_photos'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], name=op.f('fk_media_interactions_video_id_videos'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['playlist_id'], ['playlists.id'], name=op.f('fk_media_interactions_playlist_id_playlists'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_media_interactions')),
    )
    op.create_index('ix_media_interactions_user_timestamp', 'media_interactions', ['user_id', 'timestamp'], unique=False)
    for column in ('music_id', 'photo_id', 'video_id', 'playlist_id'):
        op.create_index(op.f(f'ix_media_interactions_{column}'), 'media_interactions', [column], unique=False)

    # ================================
    # Notifications
    # ================================
    op.create_table(
        'notifications',
        *_common_columns(),
        sa.Column('studio_id', sa.Uuid(), nullable=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('message', sa.LargeBinary(), nullable=False, comment='zlib-compressed message body'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('send_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_log', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.CheckConstraint(_in('channel', ('email', 'SMS', 'WhatsApp')), name=op.f('ck_notifications_notificationchannel')),
        sa.CheckConstraint(_in('status', ('pending', 'sent', 'failed')), name=op.f('ck_notifications_notificationstatus')),
        sa.ForeignKeyConstraint(['studio_id'], ['studios.id'], name=op.f('fk_notifications_studio_id_studios'), ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_notifications_user_id_users'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notifications')),
    )
    op.create_index(op.f('ix_notifications_studio_id'), 'notifications', ['studio_id'], unique=False)
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
    op.create_index('ix_notifications_status_send_at', 'notifications', ['status', 'send_at'], unique=False)


def downgrade() -> None:
    """Drop everything, dependents first."""
    op.drop_table('notifications')
    op.drop_table('media_interactions')
    op.drop_table('videos')
    op.drop_table('photos')
    op.drop_table('music')
    op.drop_table('playlists')
    op.drop_table('studios')
    op.drop_table('devices')
    op.drop_table('users')
