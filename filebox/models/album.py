import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .user import Base


class Album(Base):
    __tablename__ = "Album"
    AlbumID = Column(Integer, primary_key=True, autoincrement=True)
    UUID = Column(String(36), nullable=False, unique=True, default=lambda: str(uuid.uuid4()))
    UserID = Column(Integer, ForeignKey("Users.UserID"), nullable=False, index=True)
    Name = Column(String(255), nullable=False)
    Description = Column(String(1024), nullable=True)
    Nsfw = Column(Boolean, default=False, nullable=False)
    # "field:direction"; NULL means use the global default
    SortOrder = Column(String(32), nullable=True)
    CreatedAt = Column(DateTime, server_default=func.now())
    EditedAt = Column(DateTime, server_default=func.now(), onupdate=func.now())

    files = relationship("File", back_populates="album")
    links = relationship("AlbumLink", back_populates="album", cascade="all, delete-orphan")


class AlbumLink(Base):
    __tablename__ = "AlbumLink"
    LinkID = Column(Integer, primary_key=True, autoincrement=True)
    UUID = Column(String(36), nullable=False, unique=True, default=lambda: str(uuid.uuid4()))
    AlbumID = Column(Integer, ForeignKey("Album.AlbumID"), nullable=False, index=True)
    UserID = Column(Integer, ForeignKey("Users.UserID"), nullable=False)
    Identifier = Column(String(64), nullable=False, unique=True)
    Enabled = Column(Boolean, default=True, nullable=False)
    EnableDownload = Column(Boolean, default=True, nullable=False)
    Views = Column(Integer, default=0, nullable=False)
    ExpiresAt = Column(DateTime, nullable=True)
    CreatedAt = Column(DateTime, server_default=func.now())

    album = relationship("Album", back_populates="links")
