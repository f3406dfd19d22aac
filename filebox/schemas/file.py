from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel, ResponseMessage


class FileLinks(CamelModel):
    url: str
    thumb: str = ""
    preview: str = ""


class FilePublic(FileLinks):
    uuid: str
    name: str = Field(description="The generated name the file is stored under.")
    type: str
    size: int
    created_at: Optional[datetime] = None


class FileAsUser(FilePublic):
    original: str = Field(description="The filename the uploader sent.")
    hash: Optional[str] = None
    ip: Optional[str] = None
    is_s3: bool = False
    is_watched: bool = False


class FileAlbumRef(CamelModel):
    uuid: str
    name: str


class FileDetail(FileAsUser):
    album: Optional[FileAlbumRef] = None


class FileListResponse(ResponseMessage):
    files: List[FileAsUser]
    count: int


class FileDetailResponse(ResponseMessage):
    file: FileDetail


class UploadResponse(ResponseMessage, FileLinks):
    name: str
    uuid: str
    repeated: bool = Field(False, description="True when an identical file already existed.")
