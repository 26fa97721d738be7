import os
import datetime
import posixpath
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Literal, Optional

TEXT_EXTENSIONS = (
    '.txt', '.md', '.log', '.csv', '.json', '.xml', '.yaml', '.yml', '.ini', '.cfg', '.conf', '.toml',
    '.html', '.htm', '.css', '.js', '.ts', '.jsx', '.tsx', '.py', '.java', '.kt', '.kts', '.groovy',
    '.gradle', '.c', '.h', '.cpp', '.hpp', '.cc', '.cs', '.go', '.rs', '.rb', '.php', '.lua', '.sh',
    '.bat', '.sql', '.swift', '.scala', '.pl', '.r', '.dart', '.properties',
)
ARCHIVE_EXTENSIONS = ('.zip', '.zipx', '.jar', '.rar', '.7z', '.tar', '.gz', '.tgz', '.bz2', '.xz')
IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif', '.bmp', '.webp', '.ico', '.svg')
AUDIO_EXTENSIONS = ('.mp3', '.wav', '.ogg', '.flac', '.aac', '.m4a', '.wma')
VIDEO_EXTENSIONS = ('.mp4', '.mkv', '.avi', '.mov', '.webm', '.3gp', '.wmv')


class FileType(Enum):
    TEXT = 'text'
    ARCHIVE = 'archive'
    IMAGE = 'image'
    AUDIO = 'audio'
    VIDEO = 'video'
    DEFAULT = 'default'


@dataclass(frozen=True)
class FSPermissions:
    readable: bool = False
    writable: bool = False
    executable: bool = False


@dataclass(frozen=True)
class FSEntry:
    """Snapshot of a single filesystem location.

    Entries are values, not handles: they are not refreshed when the device
    changes, so drivers re-check the live state before acting on one.
    """

    name: str
    path: str
    type: Literal['file', 'dir']
    size: int = 0
    last_modified: Optional[datetime.datetime] = None
    permissions: FSPermissions = field(default_factory=FSPermissions)
    is_symlink: bool = False

    @classmethod
    def of(cls, path: str, type: Literal['file', 'dir'] = 'file') -> 'FSEntry':
        """Creates entry for a location that may not exist yet.

        Parameters
        ----------
        path : str
            Entry path.
        type : Literal['file', 'dir'], default='file'
            Entry kind.

        Returns
        -------
        FSEntry
            Entry without device metadata.
        """
        path = normalize_path(path)
        return cls(posixpath.basename(path), path, type)

    @classmethod
    def from_path(cls, path: str) -> 'FSEntry':
        """Creates entry from the live device state.

        Parameters
        ----------
        path : str
            Entry path.

        Returns
        -------
        FSEntry
            Entry snapshot. Missing locations produce an empty file entry.
        """
        path = normalize_path(path)
        name = posixpath.basename(path)
        try:
            stat = os.stat(path)
        except OSError:
            return cls(name, path, 'file', is_symlink=os.path.islink(path))
        is_dir = os.path.isdir(path)
        return cls(
            name=name,
            path=path,
            type='dir' if is_dir else 'file',
            size=0 if is_dir else stat.st_size,
            last_modified=datetime.datetime.fromtimestamp(stat.st_mtime),
            permissions=FSPermissions(
                readable=os.access(path, os.R_OK),
                writable=os.access(path, os.W_OK),
                executable=os.access(path, os.X_OK)
            ),
            is_symlink=os.path.islink(path)
        )

    @property
    def is_dir(self) -> bool:
        return self.type == 'dir'

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith('.')

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.name)[1].lower()

    @property
    def parent(self) -> str:
        return posixpath.dirname(self.path)

    @property
    def file_type(self) -> FileType:
        extension = self.extension
        if extension in TEXT_EXTENSIONS:
            return FileType.TEXT
        elif extension in ARCHIVE_EXTENSIONS:
            return FileType.ARCHIVE
        elif extension in IMAGE_EXTENSIONS:
            return FileType.IMAGE
        elif extension in AUDIO_EXTENSIONS:
            return FileType.AUDIO
        elif extension in VIDEO_EXTENSIONS:
            return FileType.VIDEO
        return FileType.DEFAULT


@dataclass(frozen=True)
class FSTree:
    root: FSEntry
    children: List[FSEntry]


def normalize_path(path: str) -> str:
    """Returns absolute path with '/' separators."""
    path = os.path.abspath(os.path.expanduser(str(path)))
    return path.replace(os.sep, '/')


def join_path(parent: str, name: str) -> str:
    return posixpath.join(normalize_path(parent), name)
