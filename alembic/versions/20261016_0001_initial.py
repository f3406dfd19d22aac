"""
Initial schema: users, sessions, albums, album links, files, error log.

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "Users",
        sa.Column("UserID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("UUID", sa.String(length=36), nullable=False, unique=True),
        sa.Column("Username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("HashedPassword", sa.String(length=255), nullable=False),
        sa.Column("ApiKey", sa.String(length=64), nullable=True, unique=True),
        sa.Column("ApiKeyEditedAt", sa.DateTime(), nullable=True),
        sa.Column("IsAdmin", sa.Boolean(), nullable=True),
        sa.Column("IsActive", sa.Boolean(), nullable=True),
        sa.Column("CreatedAt", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("EditedAt", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "UserSession",
        sa.Column("SessionID", sa.String(length=36), primary_key=True),
        sa.Column("UserID", sa.Integer(), sa.ForeignKey("Users.UserID"), nullable=False),
        sa.Column("CreatedAt", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("ExpiresAt", sa.DateTime(), nullable=True),
        sa.Column("IsActive", sa.Boolean(), nullable=True),
        sa.Column("LastSeen", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("IPAddress", sa.String(length=45), nullable=True),
        sa.Column("UserAgent", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "Album",
        sa.Column("AlbumID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("UUID", sa.String(length=36), nullable=False, unique=True),
        sa.Column("UserID", sa.Integer(), sa.ForeignKey("Users.UserID"), nullable=False),
        sa.Column("Name", sa.String(length=255), nullable=False),
        sa.Column("Description", sa.String(length=1024), nullable=True),
        sa.Column("Nsfw", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("SortOrder", sa.String(length=32), nullable=True),
        sa.Column("CreatedAt", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("EditedAt", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_Album_UserID", "Album", ["UserID"])

    op.create_table(
        "AlbumLink",
        sa.Column("LinkID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("UUID", sa.String(length=36), nullable=False, unique=True),
        sa.Column("AlbumID", sa.Integer(), sa.ForeignKey("Album.AlbumID"), nullable=False),
        sa.Column("UserID", sa.Integer(), sa.ForeignKey("Users.UserID"), nullable=False),
        sa.Column("Identifier", sa.String(length=64), nullable=False, unique=True),
        sa.Column("Enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("EnableDownload", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("Views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ExpiresAt", sa.DateTime(), nullable=True),
        sa.Column("CreatedAt", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_AlbumLink_AlbumID", "AlbumLink", ["AlbumID"])

    op.create_table(
        "File",
        sa.Column("FileID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("UUID", sa.String(length=36), nullable=False, unique=True),
        sa.Column("UserID", sa.Integer(), sa.ForeignKey("Users.UserID"), nullable=False),
        sa.Column("AlbumID", sa.Integer(), sa.ForeignKey("Album.AlbumID"), nullable=True),
        sa.Column("Name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("Original", sa.String(length=255), nullable=False),
        sa.Column("Type", sa.String(length=128), nullable=False),
        sa.Column("Size", sa.BigInteger(), nullable=False),
        sa.Column("Hash", sa.String(length=128), nullable=True),
        sa.Column("IP", sa.String(length=45), nullable=True),
        sa.Column("IsS3", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("IsWatched", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("CreatedAt", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("EditedAt", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_File_UserID", "File", ["UserID"])
    op.create_index("ix_File_AlbumID", "File", ["AlbumID"])
    op.create_index("ix_File_Hash", "File", ["Hash"])

    op.create_table(
        "AppErrorLog",
        sa.Column("ErrorID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("OccurredAt", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("RequestID", sa.String(length=64), nullable=True),
        sa.Column("Path", sa.String(length=500), nullable=True),
        sa.Column("Method", sa.String(length=16), nullable=True),
        sa.Column("StatusCode", sa.Integer(), nullable=True),
        sa.Column("UserID", sa.Integer(), nullable=True),
        sa.Column("ClientIP", sa.String(length=45), nullable=True),
        sa.Column("UserAgent", sa.String(length=255), nullable=True),
        sa.Column("Message", sa.Text(), nullable=True),
        sa.Column("StackTrace", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("AppErrorLog")
    op.drop_index("ix_File_Hash", table_name="File")
    op.drop_index("ix_File_AlbumID", table_name="File")
    op.drop_index("ix_File_UserID", table_name="File")
    op.drop_table("File")
    op.drop_index("ix_AlbumLink_AlbumID", table_name="AlbumLink")
    op.drop_table("AlbumLink")
    op.drop_index("ix_Album_UserID", table_name="Album")
    op.drop_table("Album")
    op.drop_table("UserSession")
    op.drop_table("Users")
