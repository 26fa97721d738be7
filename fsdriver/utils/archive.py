"""Zip container support.

Validation helpers are ordered the way `decompress` applies them:
encryption, split archive, structural validity.
"""
import os
import zlib
import struct
import logging
import zipfile
import threading
from typing import List

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.zip', '.zipx', '.jar')

_ENCRYPTED_FLAG = 0x1
_SPANNED_SIGNATURE = b'PK\x07\x08'
_END_OF_CENTRAL_DIR_SIGNATURE = b'PK\x05\x06'
_END_OF_CENTRAL_DIR_MAX_SIZE = 22 + 0xFFFF


def is_supported(name: str) -> bool:
    return name.lower().endswith(SUPPORTED_EXTENSIONS)


def is_encrypted(path: str) -> bool:
    """Checks whether any archive member is encrypted.

    Unreadable containers are not reported as encrypted, `is_valid` rejects them.
    """
    try:
        with zipfile.ZipFile(path) as archive:
            return any(info.flag_bits & _ENCRYPTED_FLAG for info in archive.infolist())
    except zipfile.BadZipFile:
        return False


def is_split(path: str) -> bool:
    """Checks whether archive is a part of a multi-volume set."""
    root, _ = os.path.splitext(path)
    if os.path.exists(root + '.z01'):
        return True
    with open(path, 'rb') as f:
        if f.read(4) == _SPANNED_SIGNATURE:
            return True
        f.seek(0, os.SEEK_END)
        size = f.tell()
        f.seek(max(0, size - _END_OF_CENTRAL_DIR_MAX_SIZE))
        tail = f.read()
    offset = tail.rfind(_END_OF_CENTRAL_DIR_SIGNATURE)
    if offset < 0 or len(tail) < offset + 8:
        return False
    disk_number, central_dir_disk = struct.unpack('<HH', tail[offset + 4:offset + 8])
    return disk_number != 0 or central_dir_disk != 0


def is_valid(path: str) -> bool:
    """Checks archive structure and member checksums."""
    if not os.path.isfile(path) or not zipfile.is_zipfile(path):
        return False
    try:
        with zipfile.ZipFile(path) as archive:
            return archive.testzip() is None
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as err:
        logger.warning("malformed archive '%s': %s", path, err)
        return False


def extract_all(path: str, dst_path: str) -> List[str]:
    """Extracts all members into `dst_path`.

    Returns
    -------
    List[str]
        Extracted member names.
    """
    os.makedirs(dst_path, exist_ok=True)
    with zipfile.ZipFile(path) as archive:
        archive.extractall(dst_path)
        return archive.namelist()


class ArchiveWriter:
    """Writes members to a new zip archive.

    The archive file is created exclusively: opening fails with
    `FileExistsError` if the path is taken. `close` waits for a running `add`.

    Attributes
    ----------
    path : str
        Archive path.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._archive = zipfile.ZipFile(path, 'x', compression=zipfile.ZIP_DEFLATED)

    def add(self, src_path: str) -> List[str]:
        """Adds file or directory subtree under its base name.

        Parameters
        ----------
        src_path : str
            File or directory path.

        Returns
        -------
        List[str]
            Added member names.
        """
        src_path = src_path.rstrip('/\\')
        base = os.path.dirname(src_path)
        with self._lock:
            if not os.path.isdir(src_path):
                arcname = os.path.basename(src_path)
                self._archive.write(src_path, arcname)
                return [arcname]
            members = []
            own_path = os.path.abspath(self.path)
            for root, dirs, files in os.walk(src_path):
                dirs.sort()
                for name in [root] + [os.path.join(root, f) for f in sorted(files)]:
                    if os.path.abspath(name) == own_path:
                        continue
                    arcname = os.path.relpath(name, base).replace(os.sep, '/')
                    self._archive.write(name, arcname)
                    members.append(arcname + '/' if os.path.isdir(name) else arcname)
            return members

    def close(self) -> None:
        with self._lock:
            self._archive.close()
