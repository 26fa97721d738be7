"""Background jobs over a filesystem driver.

A job takes a list of entries where the first one is the source and the last
one is the destination, reports progress per completed member and finishes
with a `Result`. Jobs are unique by name: a job scheduled while another one
with the same name is running starts after it.
"""
import asyncio
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from tqdm.auto import tqdm

from fsdriver.filesystem import Filesystem
from fsdriver.utils.entry import FSEntry
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
)
from fsdriver.utils.result import Result, capture

logger = logging.getLogger(__name__)

EXTRACT_JOB = 'extract-file'
COMPRESS_JOB = 'compress-file'

MESSAGE_DONE = 'Done'
MESSAGE_CANCELLED = 'Operation cancelled'
MESSAGE_ERROR = 'An error occurred'
MESSAGES = {
    NotFoundError: 'File not found',
    AlreadyExistsError: 'File already exists',
    DirectoryExpectedError: 'Directory expected',
    UnsupportedArchiveError: 'Unsupported archive',
    EncryptedArchiveError: 'Archive is encrypted',
    SplitArchiveError: 'Split archives are not supported',
    InvalidArchiveError: 'Invalid archive',
    OutOfMemoryError: 'File is too large',
    IOFailureError: 'I/O error occurred',
}

_FINISHED = object()


def message_for(error: BaseException) -> str:
    """Returns user message for error."""
    if isinstance(error, asyncio.CancelledError):
        return MESSAGE_CANCELLED
    for cls in type(error).__mro__:
        if cls in MESSAGES:
            return MESSAGES[cls]
    return MESSAGE_ERROR


def split_input(entries: Sequence[FSEntry]) -> Tuple[List[FSEntry], FSEntry]:
    """Splits job input into sources and destination."""
    if len(entries) < 2:
        raise ValueError('job input must contain at least a source and a destination')
    return list(entries[:-1]), entries[-1]


class Job:
    """Scheduled job.

    Attributes
    ----------
    name : str
        Job name.
    task : asyncio.Task
        Running task, its result is a `Result`.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.task: Optional['asyncio.Task[Result[List[FSEntry]]]'] = None
        self._progress: 'asyncio.Queue[Any]' = asyncio.Queue()

    @property
    def finished(self) -> bool:
        return self.task is not None and self.task.done()

    def report(self, entry: FSEntry) -> None:
        self._progress.put_nowait(entry)

    def close(self) -> None:
        self._progress.put_nowait(_FINISHED)

    async def observe(self) -> AsyncIterator[FSEntry]:
        """Yields progress entries until the job finishes. Single consumer."""
        while True:
            item = await self._progress.get()
            if item is _FINISHED:
                return
            yield item

    async def wait(self) -> Result[List[FSEntry]]:
        assert self.task is not None
        return await self.task

    def cancel(self) -> None:
        if self.task is not None:
            self.task.cancel()


class JobHost:
    """Runs extract/compress jobs.

    Attributes
    ----------
    filesystem : Filesystem
        Filesystem driver.
    notify : Callable[[str], None]
        Receives user message when a job finishes.
    show_progress : bool
        Show progress bars.
    """

    def __init__(
        self,
        filesystem: Filesystem,
        notify: Optional[Callable[[str], None]] = None,
        show_progress: bool = True
    ) -> None:
        self.filesystem = filesystem
        self.notify = notify or self._log_message
        self.show_progress = show_progress
        self._jobs: Dict[str, Job] = {}

    def schedule_extract(self, entries: Sequence[FSEntry]) -> Job:
        """Schedules archive extraction.

        Parameters
        ----------
        entries : Sequence[FSEntry]
            Archive followed by destination directory.

        Returns
        -------
        Job
            Scheduled job.
        """
        sources, dest = split_input(entries)
        return self._schedule(EXTRACT_JOB, lambda job: self._extract(job, sources[0], dest))

    def schedule_compress(self, entries: Sequence[FSEntry], archive_name: str) -> Job:
        """Schedules compression.

        Parameters
        ----------
        entries : Sequence[FSEntry]
            Entries to compress followed by destination directory.
        archive_name : str
            Archive file name.

        Returns
        -------
        Job
            Scheduled job.
        """
        sources, dest = split_input(entries)
        return self._schedule(COMPRESS_JOB, lambda job: self._compress(job, sources, dest, archive_name))

    def get(self, name: str) -> Optional[Job]:
        return self._jobs.get(name)

    def cancel(self, name: str) -> None:
        job = self._jobs.get(name)
        if job is not None:
            job.cancel()

    def _schedule(self, name: str, work: Callable[[Job], Awaitable[List[FSEntry]]]) -> Job:
        previous = self._jobs.get(name)
        job = Job(name)
        job.task = asyncio.get_running_loop().create_task(self._run(job, work, previous))
        job.task.add_done_callback(lambda task: self._on_done(job, task))
        self._jobs[name] = job
        return job

    async def _run(
        self,
        job: Job,
        work: Callable[[Job], Awaitable[List[FSEntry]]],
        previous: Optional[Job]
    ) -> Result[List[FSEntry]]:
        if previous is not None and previous.task is not None and not previous.finished:
            await asyncio.wait([previous.task])
        try:
            result = await capture(work(job))
        except Exception:
            logger.exception("job '%s' crashed", job.name)
            self.notify(MESSAGE_ERROR)
            raise
        if result.ok:
            self.notify(MESSAGE_DONE)
        else:
            logger.error("job '%s' failed: %s", job.name, result.error)
            self.notify(message_for(result.error))
        return result

    def _on_done(self, job: Job, task: 'asyncio.Task[Result[List[FSEntry]]]') -> None:
        # runs for tasks cancelled before their first step too
        job.close()
        if task.cancelled():
            logger.info("job '%s' cancelled", job.name)
            self.notify(MESSAGE_CANCELLED)

    async def _extract(self, job: Job, source: FSEntry, dest: FSEntry) -> List[FSEntry]:
        with tqdm(total=1, desc='Extracting', disable=not self.show_progress) as pbar:
            entry = await self.filesystem.decompress(source, dest)
            pbar.update(1)
            job.report(entry)
        return [entry]

    async def _compress(
        self,
        job: Job,
        sources: List[FSEntry],
        dest: FSEntry,
        archive_name: str
    ) -> List[FSEntry]:
        added = []
        with tqdm(total=len(sources), desc='Compressing', disable=not self.show_progress) as pbar:
            async with aclosing(self.filesystem.compress(sources, dest, archive_name)) as progress:
                async for entry in progress:
                    added.append(entry)
                    pbar.update(1)
                    job.report(entry)
        return added

    @staticmethod
    def _log_message(message: str) -> None:
        logger.info(message)
