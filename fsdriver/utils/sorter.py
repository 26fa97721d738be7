import datetime
import functools
from enum import IntEnum
from typing import Callable, Iterable, List, Union

from fsdriver.utils.entry import FSEntry

Comparator = Callable[[FSEntry, FSEntry], int]

_EPOCH = datetime.datetime.fromtimestamp(0)


class SortMode(IntEnum):
    NAME = 0
    SIZE = 1
    DATE = 2


def _compare(first, second) -> int:
    return (first > second) - (first < second)


def _compare_names(first: FSEntry, second: FSEntry) -> int:
    return _compare(first.name.lower(), second.name.lower())


def _compare_sizes(first: FSEntry, second: FSEntry) -> int:
    return _compare(first.size, second.size)


def _compare_dates(first: FSEntry, second: FSEntry) -> int:
    return _compare(first.last_modified or _EPOCH, second.last_modified or _EPOCH)


def get_comparator(mode: Union[SortMode, int, str]) -> Comparator:
    """Returns entry comparator for sort mode.

    Parameters
    ----------
    mode : Union[SortMode, int, str]
        Sort mode, its value or its name.

    Returns
    -------
    Comparator
        Function returning negative, zero or positive number.
    """
    try:
        mode = SortMode[mode.upper()] if isinstance(mode, str) else SortMode(mode)
    except (KeyError, ValueError):
        raise ValueError(f"unknown sort mode: '{mode}'") from None
    if mode == SortMode.NAME:
        return _compare_names
    elif mode == SortMode.SIZE:
        return _compare_sizes
    return _compare_dates


def sort_entries(
    entries: Iterable[FSEntry],
    mode: Union[SortMode, int, str],
    reverse: bool = False
) -> List[FSEntry]:
    return sorted(entries, key=functools.cmp_to_key(get_comparator(mode)), reverse=reverse)
