import asyncio
import logging
import posixpath
from typing import AsyncIterator, Optional, Sequence

import yaml
import aiofiles
import aioshutil
import aiofiles.os

from fsdriver.filesystem import Filesystem
from fsdriver.utils import archive
from fsdriver.utils.entry import FSEntry, FSTree, join_path, normalize_path
from fsdriver.utils.errors import (
    AlreadyExistsError,
    DirectoryExpectedError,
    EncryptedArchiveError,
    InvalidArchiveError,
    IOFailureError,
    NotFoundError,
    OutOfMemoryError,
    SplitArchiveError,
    UnsupportedArchiveError,
    translate_errors,
)
from fsdriver.utils.properties import FSProperties, properties_of
from fsdriver.utils.text import LineBreak, TextParams, decode, encode

logger = logging.getLogger(__name__)

DEFAULT_MAX_LOAD_SIZE = 64 * 1024 * 1024


class LocalFilesystem(Filesystem):
    """Local file system driver.

    The driver keeps only its configuration: every call reads the live device
    state, nothing is cached between calls.

    Attributes
    ----------
    root : str
        Default location.
    max_load_size : int
        Max file size in bytes accepted by `load`.
    text_params : TextParams
        Text parameters used when `load`/`save` get none.
    """

    def __init__(
        self,
        root: str,
        max_load_size: int = DEFAULT_MAX_LOAD_SIZE,
        charset: str = 'utf-8',
        detect_charset: bool = False,
        line_break: str = 'LF'
    ) -> None:
        self.root = normalize_path(root)
        self.max_load_size = max_load_size
        self.text_params = TextParams(charset, detect_charset, LineBreak.parse(line_break))

    @classmethod
    def from_yaml(cls, path: str) -> 'LocalFilesystem':
        """Creates class instance from configuration path.

        Parameters
        ----------
        path : str
            path to configuration file.

        Returns
        -------
        LocalFilesystem
            Class instance.
        """
        with open(path) as f:
            config = yaml.safe_load(f)
        return cls(**config)

    @translate_errors
    async def list_default(self) -> FSTree:
        return await self._list(self.root)

    @translate_errors
    async def list_children(self, parent: Optional[FSEntry] = None) -> FSTree:
        if parent is None:
            return await self._list(self.root)
        return await self._list(normalize_path(parent.path))

    @translate_errors
    async def create(self, entry: FSEntry) -> FSEntry:
        path = normalize_path(entry.path)
        if await aiofiles.os.path.exists(path):
            raise AlreadyExistsError(path)
        if entry.is_dir:
            await aiofiles.os.makedirs(path, exist_ok=True)
        else:
            await aiofiles.os.makedirs(posixpath.dirname(path), exist_ok=True)
            try:
                async with aiofiles.open(path, 'x'):
                    pass
            except FileExistsError:
                raise AlreadyExistsError(path) from None
        logger.debug("created %s '%s'", entry.type, path)
        return await self._entry(path)

    @translate_errors
    async def rename(self, entry: FSEntry, new_name: str) -> FSEntry:
        path = normalize_path(entry.path)
        if not new_name or new_name in ('.', '..') or '/' in new_name or '\\' in new_name:
            raise IOFailureError(path, ValueError(f"invalid file name: '{new_name}'"))
        renamed_path = join_path(posixpath.dirname(path), new_name)
        if not await aiofiles.os.path.exists(path):
            raise NotFoundError(path)
        if await aiofiles.os.path.exists(renamed_path):
            raise AlreadyExistsError(renamed_path)
        await aiofiles.os.rename(path, renamed_path)
        logger.debug("renamed '%s' to '%s'", path, renamed_path)
        return await self._entry(renamed_path)

    @translate_errors
    async def delete(self, entry: FSEntry) -> FSEntry:
        path = normalize_path(entry.path)
        is_link = await aiofiles.os.path.islink(path)
        if not is_link and not await aiofiles.os.path.exists(path):
            raise NotFoundError(path)
        if not is_link and await aiofiles.os.path.isdir(path):
            await aioshutil.rmtree(path)
        else:
            await aiofiles.os.remove(path)
        logger.debug("deleted '%s'", path)
        return await self._entry(posixpath.dirname(path))

    @translate_errors
    async def copy(self, source: FSEntry, dest: FSEntry) -> FSEntry:
        src_path = normalize_path(source.path)
        dst_dir = normalize_path(dest.path)
        dst_path = join_path(dst_dir, posixpath.basename(src_path))
        if not await aiofiles.os.path.exists(src_path):
            raise NotFoundError(src_path)
        if not await aiofiles.os.path.isdir(dst_dir):
            raise NotFoundError(dst_dir)
        if await aiofiles.os.path.exists(dst_path):
            raise AlreadyExistsError(dst_path)
        if await aiofiles.os.path.isdir(src_path):
            if (dst_dir + '/').startswith(src_path + '/'):
                raise IOFailureError(src_path, ValueError('cannot copy a directory into itself'))
            await aioshutil.copytree(src_path, dst_path, symlinks=True)
        else:
            await aioshutil.copy2(src_path, dst_path)
        logger.debug("copied '%s' to '%s'", src_path, dst_path)
        return await self._entry(dst_path)

    @translate_errors
    async def properties_of(self, entry: FSEntry) -> FSProperties:
        path = normalize_path(entry.path)
        if not await aiofiles.os.path.exists(path):
            raise NotFoundError(path)
        return await asyncio.to_thread(properties_of, await self._entry(path))

    async def compress(
        self,
        source: Sequence[FSEntry],
        dest: FSEntry,
        archive_name: str
    ) -> AsyncIterator[FSEntry]:
        dst_dir = normalize_path(dest.path)
        archive_path = join_path(dst_dir, archive_name)
        try:
            if await aiofiles.os.path.exists(archive_path):
                raise AlreadyExistsError(archive_path)
            if not await aiofiles.os.path.isdir(dst_dir):
                raise NotFoundError(dst_dir)
            writer = await asyncio.to_thread(archive.ArchiveWriter, archive_path)
        except FileExistsError:
            raise AlreadyExistsError(archive_path) from None
        except OSError as err:
            raise IOFailureError(archive_path, err) from err
        failed = True
        try:
            for entry in source:
                path = normalize_path(entry.path)
                if not await aiofiles.os.path.exists(path):
                    logger.warning("compress '%s' aborted, '%s' not found", archive_path, path)
                    raise NotFoundError(path)
                try:
                    members = await asyncio.to_thread(writer.add, path)
                except OSError as err:
                    raise IOFailureError(path, err) from err
                logger.debug("added %d member(s) from '%s' to '%s'", len(members), path, archive_path)
                yield entry
            failed = False
        finally:
            try:
                await asyncio.to_thread(writer.close)
            except OSError as err:
                if not failed:
                    raise IOFailureError(archive_path, err) from err
                # keep the error already propagating
                logger.error("failed to close '%s': %s", archive_path, err)

    @translate_errors
    async def decompress(self, source: FSEntry, dest: FSEntry) -> FSEntry:
        path = normalize_path(source.path)
        if not archive.is_supported(posixpath.basename(path)):
            raise UnsupportedArchiveError(path)
        if not await aiofiles.os.path.exists(path):
            raise NotFoundError(path)
        if await aiofiles.os.path.isfile(path):
            if await asyncio.to_thread(archive.is_encrypted, path):
                raise EncryptedArchiveError(path)
            if await asyncio.to_thread(archive.is_split, path):
                raise SplitArchiveError(path)
        if not await asyncio.to_thread(archive.is_valid, path):
            raise InvalidArchiveError(path)
        dst_path = normalize_path(dest.path)
        members = await asyncio.to_thread(archive.extract_all, path, dst_path)
        logger.debug("extracted %d member(s) from '%s' to '%s'", len(members), path, dst_path)
        return source

    @translate_errors
    async def load(self, entry: FSEntry, params: Optional[TextParams] = None) -> str:
        params = params or self.text_params
        path = normalize_path(entry.path)
        if not await aiofiles.os.path.exists(path):
            raise NotFoundError(path)
        if await aiofiles.os.path.getsize(path) > self.max_load_size:
            logger.warning("'%s' exceeds max load size of %d bytes", path, self.max_load_size)
            raise OutOfMemoryError(path)
        async with aiofiles.open(path, 'rb') as f:
            data = await f.read()
        return await asyncio.to_thread(decode, data, params, path)

    @translate_errors
    async def save(self, entry: FSEntry, text: str, params: Optional[TextParams] = None) -> None:
        params = params or self.text_params
        path = normalize_path(entry.path)
        data = await asyncio.to_thread(encode, text, params, path)
        await aiofiles.os.makedirs(posixpath.dirname(path), exist_ok=True)
        async with aiofiles.open(path, 'wb') as f:
            await f.write(data)
        logger.debug("saved %d bytes to '%s'", len(data), path)

    async def _list(self, path: str) -> FSTree:
        if not await aiofiles.os.path.isdir(path):
            raise DirectoryExpectedError(path)
        names = sorted(await aiofiles.os.listdir(path))
        children = await asyncio.to_thread(lambda: [FSEntry.from_path(join_path(path, name)) for name in names])
        return FSTree(await self._entry(path), children)

    @staticmethod
    async def _entry(path: str) -> FSEntry:
        return await asyncio.to_thread(FSEntry.from_path, path)
