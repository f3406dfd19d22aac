import uuid

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .user import Base


class File(Base):
    __tablename__ = "File"
    FileID = Column(Integer, primary_key=True, autoincrement=True)
    UUID = Column(String(36), nullable=False, unique=True, default=lambda: str(uuid.uuid4()))
    UserID = Column(Integer, ForeignKey("Users.UserID"), nullable=False, index=True)
    AlbumID = Column(Integer, ForeignKey("Album.AlbumID"), nullable=True, index=True)
    # Generated storage name (what the public link points at)
    Name = Column(String(255), nullable=False, unique=True)
    # Client supplied filename
    Original = Column(String(255), nullable=False)
    Type = Column(String(128), nullable=False)
    Size = Column(BigInteger, nullable=False)  # Size in bytes
    Hash = Column(String(128), nullable=True, index=True)
    IP = Column(String(45), nullable=True)
    IsS3 = Column(Boolean, default=False, nullable=False)
    IsWatched = Column(Boolean, default=False, nullable=False)
    CreatedAt = Column(DateTime, server_default=func.now())
    EditedAt = Column(DateTime, server_default=func.now(), onupdate=func.now())

    album = relationship("Album", back_populates="files")
