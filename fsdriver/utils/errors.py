import functools
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class FSError(Exception):
    """Base class for filesystem driver errors.

    Attributes
    ----------
    path : str
        Path of the offending entry.
    """

    message = 'Filesystem error'

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        self.path = path
        super().__init__(f"{message or self.message}: '{path}'")


class NotFoundError(FSError):
    message = 'No such file or directory'


class AlreadyExistsError(FSError):
    message = 'File or directory already exists'


class DirectoryExpectedError(FSError):
    message = 'Not a directory'


class UnsupportedArchiveError(FSError):
    message = 'Unsupported archive format'


class EncryptedArchiveError(FSError):
    message = 'Archive is encrypted'


class SplitArchiveError(FSError):
    message = 'Split archives are not supported'


class InvalidArchiveError(FSError):
    message = 'Invalid archive'


class OutOfMemoryError(FSError):
    message = 'Content is too large to load'


class IOFailureError(FSError):
    """Underlying device error.

    Attributes
    ----------
    path : str
        Path of the offending entry.
    cause : BaseException
        Original error.
    """

    message = 'I/O failure'

    def __init__(self, path: str, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(path, f'{self.message} ({cause})')


def translate_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Wraps driver coroutine so that only `FSError` leaves it.

    The offending path is taken from the first positional argument after `self`
    (an entry or a path string), falling back to the driver root.
    """
    @functools.wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await func(self, *args, **kwargs)
        except FSError:
            raise
        except MemoryError as err:
            path = _target_path(self, args)
            logger.warning("out of memory while processing '%s'", path)
            raise OutOfMemoryError(path) from err
        except OSError as err:
            path = _target_path(self, args)
            logger.debug("device error on '%s': %s", path, err)
            raise IOFailureError(path, err) from err
    return wrapper


def _target_path(driver: Any, args: tuple) -> str:
    target = args[0] if args else None
    if isinstance(target, (list, tuple)):
        target = target[0] if target else None
    if target is None:
        return str(getattr(driver, 'root', ''))
    return str(getattr(target, 'path', target))
