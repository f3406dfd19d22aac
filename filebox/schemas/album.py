from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel, ResponseMessage
from .file import FileAsUser, FilePublic


class AlbumCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1024)


class AlbumEdit(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1024)
    nsfw: Optional[bool] = None
    # Stored as given; unknown values are normalized when listing
    sort_order: Optional[str] = Field(None, max_length=32)


class AlbumSummary(CamelModel):
    uuid: str
    name: str
    description: Optional[str] = None
    is_nsfw: bool = False
    sort_order: Optional[str] = None
    count: int = 0
    created_at: Optional[datetime] = None


class AlbumListResponse(ResponseMessage):
    albums: List[AlbumSummary]


class AlbumCreateResponse(ResponseMessage):
    album: AlbumSummary


class AlbumResponse(ResponseMessage):
    name: str = Field(description="The name of the album.")
    description: Optional[str] = Field(None, description="The description of the album.")
    is_nsfw: bool = Field(description="Whether or not the album is nsfw.")
    sort_order: Optional[str] = Field(None, description="The sort order for files in this album.")
    count: int = Field(description="The number of files in the album.")
    files: List[FileAsUser]


class PublicAlbumResponse(ResponseMessage):
    name: str
    description: Optional[str] = None
    is_nsfw: bool
    # Informational flag for clients; files stay reachable through their own links
    enable_download: bool = True
    count: int
    files: List[FilePublic]


class AlbumLinkInfo(CamelModel):
    uuid: str
    identifier: str
    enabled: bool
    enable_download: bool
    views: int = 0
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AlbumLinkResponse(ResponseMessage, AlbumLinkInfo):
    pass


class AlbumLinkListResponse(ResponseMessage):
    links: List[AlbumLinkInfo]


class AlbumLinkEdit(CamelModel):
    enabled: Optional[bool] = None
    enable_download: Optional[bool] = None
    expires_at: Optional[datetime] = None
