import os
import datetime
from dataclasses import dataclass
from typing import Union

from fsdriver.utils.entry import FileType, FSEntry
from fsdriver.utils.text import split_lines

UNKNOWN = '…'
SIZE_UNITS = ('B', 'KB', 'MB', 'GB', 'TB')
DATE_FORMAT = '%d.%m.%Y %H:%M'


@dataclass(frozen=True)
class FSProperties:
    """Entry properties.

    Counts are `UNKNOWN` for anything but regular text files.
    """

    name: str
    absolute_path: str
    formatted_last_modified: str
    formatted_size: str
    line_count: Union[int, str]
    word_count: Union[int, str]
    char_count: Union[int, str]
    readable: bool
    writable: bool
    executable: bool


def format_size(size: int) -> str:
    value = float(size)
    for unit in SIZE_UNITS:
        if value < 1024 or unit == SIZE_UNITS[-1]:
            break
        value /= 1024
    if unit == 'B':
        return f'{int(value)} {unit}'
    return f'{value:.2f} {unit}'


def format_date(timestamp: float) -> str:
    return datetime.datetime.fromtimestamp(timestamp).strftime(DATE_FORMAT)


def total_size(path: str) -> int:
    if not os.path.isdir(path):
        return os.path.getsize(path)
    size = 0
    for root, dirs, files in os.walk(path):
        for name in files:
            file_path = os.path.join(root, name)
            if not os.path.islink(file_path):
                size += os.path.getsize(file_path)
    return size


def count_lines(text: str) -> int:
    return len(split_lines(text))


def count_words(text: str) -> int:
    # single-space split: consecutive spaces and empty lines produce counted empty words
    return sum(len(line.split(' ')) for line in split_lines(text))


def properties_of(entry: FSEntry) -> FSProperties:
    """Calculates properties of an existing entry.

    Parameters
    ----------
    entry : FSEntry
        Entry snapshot.

    Returns
    -------
    FSProperties
        Entry properties.
    """
    path = entry.path
    stat = os.stat(path)
    line_count: Union[int, str] = UNKNOWN
    word_count: Union[int, str] = UNKNOWN
    char_count: Union[int, str] = UNKNOWN
    if os.path.isfile(path) and entry.file_type == FileType.TEXT:
        with open(path, 'rb') as f:
            data = f.read()
        text = data.decode('utf-8', errors='replace')
        line_count = count_lines(text)
        word_count = count_words(text)
        char_count = len(data)
    return FSProperties(
        name=os.path.basename(path),
        absolute_path=path,
        formatted_last_modified=format_date(stat.st_mtime),
        formatted_size=format_size(total_size(path)),
        line_count=line_count,
        word_count=word_count,
        char_count=char_count,
        readable=os.access(path, os.R_OK),
        writable=os.access(path, os.W_OK),
        executable=os.access(path, os.X_OK)
    )
