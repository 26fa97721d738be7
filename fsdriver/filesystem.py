from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional, Sequence

from fsdriver.utils.entry import FSEntry, FSTree
from fsdriver.utils.properties import FSProperties
from fsdriver.utils.text import TextParams


class Filesystem(ABC):
    """Abstract class for async filesystem driver.

    Every operation raises one of `fsdriver.utils.errors.FSError` subclasses on failure.
    Operations do not lock anything: concurrent calls on overlapping paths are
    not serialized, e.g. a rename racing a delete of the same entry is resolved
    by whichever reaches the device first.
    """

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator['Filesystem', None]:
        """Connects to file system.

        Yields
        -------
        Filesystem
            Class instance
        """
        yield self

    @abstractmethod
    async def list_default(self) -> FSTree:
        """List default location.

        Returns
        -------
        FSTree
            Default location with its children.
        """
        pass

    @abstractmethod
    async def list_children(self, parent: Optional[FSEntry] = None) -> FSTree:
        """List directory content.

        Parameters
        ----------
        parent : Optional[FSEntry], default=None
            Directory, default location if not set.

        Returns
        -------
        FSTree
            Directory with its children.
        """
        pass

    @abstractmethod
    async def create(self, entry: FSEntry) -> FSEntry:
        """Create file or directory with missing parents.

        Parameters
        ----------
        entry : FSEntry
            Entry to create.

        Returns
        -------
        FSEntry
            Created entry.
        """
        pass

    @abstractmethod
    async def rename(self, entry: FSEntry, new_name: str) -> FSEntry:
        """Rename file or directory within its parent.

        Parameters
        ----------
        entry : FSEntry
            Entry to rename.
        new_name : str
            New name.

        Returns
        -------
        FSEntry
            Renamed entry.
        """
        pass

    @abstractmethod
    async def delete(self, entry: FSEntry) -> FSEntry:
        """Delete file or directory recursively.

        Parameters
        ----------
        entry : FSEntry
            Entry to delete.

        Returns
        -------
        FSEntry
            Parent directory.
        """
        pass

    @abstractmethod
    async def copy(self, source: FSEntry, dest: FSEntry) -> FSEntry:
        """Copy file or directory recursively into directory.

        Parameters
        ----------
        source : FSEntry
            Entry to copy.
        dest : FSEntry
            Destination directory.

        Returns
        -------
        FSEntry
            Copied entry.
        """
        pass

    @abstractmethod
    async def properties_of(self, entry: FSEntry) -> FSProperties:
        """Calculate entry properties.

        Parameters
        ----------
        entry : FSEntry
            File or directory.

        Returns
        -------
        FSProperties
            Entry properties.
        """
        pass

    @abstractmethod
    def compress(self, source: Sequence[FSEntry], dest: FSEntry, archive_name: str) -> AsyncIterator[FSEntry]:
        """Compress entries into new archive.

        Parameters
        ----------
        source : Sequence[FSEntry]
            Entries to add.
        dest : FSEntry
            Destination directory.
        archive_name : str
            Archive file name.

        Yields
        -------
        FSEntry
            Source entry, after it has been added.
        """
        pass

    @abstractmethod
    async def decompress(self, source: FSEntry, dest: FSEntry) -> FSEntry:
        """Extract archive into directory.

        Parameters
        ----------
        source : FSEntry
            Archive.
        dest : FSEntry
            Destination directory.

        Returns
        -------
        FSEntry
            Archive entry.
        """
        pass

    @abstractmethod
    async def load(self, entry: FSEntry, params: Optional[TextParams] = None) -> str:
        """Load text file.

        Parameters
        ----------
        entry : FSEntry
            File to load.
        params : Optional[TextParams], default=None
            Text parameters.

        Returns
        -------
        str
            File content.
        """
        pass

    @abstractmethod
    async def save(self, entry: FSEntry, text: str, params: Optional[TextParams] = None) -> None:
        """Save text file, creating it and its parents if missing.

        Parameters
        ----------
        entry : FSEntry
            File to save.
        text : str
            File content.
        params : Optional[TextParams], default=None
            Text parameters.
        """
        pass
