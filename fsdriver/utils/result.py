from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

from fsdriver.utils.errors import FSError

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a driver operation: either a value or a taxonomy error.

    Attributes
    ----------
    value : Optional[T]
        Operation value, `None` on failure or for side-effect only operations.
    error : Optional[FSError]
        Operation error, `None` on success.
    """

    value: Optional[T] = None
    error: Optional[FSError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> 'Result[T]':
        return cls(value=value)

    @classmethod
    def failure(cls, error: FSError) -> 'Result[T]':
        if not isinstance(error, FSError):
            raise TypeError(f'expected FSError, got {type(error).__name__}')
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Optional[T]:
        """Returns value or raises the stored error."""
        if self.error is not None:
            raise self.error
        return self.value


async def capture(operation: Awaitable[T]) -> Result[T]:
    """Awaits driver operation and wraps its outcome into `Result`."""
    try:
        return Result.success(await operation)
    except FSError as err:
        return Result.failure(err)
