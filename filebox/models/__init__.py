# Package init for filebox.models
from .album import Album as Album
from .album import AlbumLink as AlbumLink
from .file import File as File
from .logging import AppErrorLog as AppErrorLog
from .user import Base as Base  # explicit re-export
from .user import User as User
from .user import UserSession as UserSession
