import re
import codecs
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Union

from charset_normalizer import from_bytes

from fsdriver.utils.errors import IOFailureError, OutOfMemoryError

logger = logging.getLogger(__name__)

LINE_BREAK_PATTERN = re.compile(r'\r\n|\r|\n')


class LineBreak(Enum):
    LF = '\n'
    CRLF = '\r\n'
    CR = '\r'

    @classmethod
    def parse(cls, value: Union[str, 'LineBreak']) -> 'LineBreak':
        """Parses line break name ('LF', 'CRLF', 'CR')."""
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"invalid line break: '{value}'") from None


@dataclass(frozen=True)
class TextParams:
    """Text decoding/encoding parameters.

    Attributes
    ----------
    charset : str
        Charset used for encoding, and for decoding when detection is
        disabled or inconclusive.
    detect_charset : bool
        Detect charset of loaded content.
    line_break : LineBreak
        Line terminator written on save.
    """

    charset: str = 'utf-8'
    detect_charset: bool = False
    line_break: LineBreak = LineBreak.LF


def detect_charset(data: bytes, default: str) -> str:
    """Guesses charset of `data`, returns `default` if detection is inconclusive.

    Detection is inconclusive when nothing matches, when the best match shows
    no language coherence, or when `default` decodes the content and is one of
    the candidates. Strictly decodable Unicode encodings always win.
    """
    matches = from_bytes(data)
    best = matches.best()
    if best is None:
        logger.warning("charset detection failed, falling back to '%s'", default)
        return default
    if best.encoding.startswith('utf') and _decodes(data, best.encoding):
        return best.encoding
    candidates = [name for match in matches for name in [match.encoding] + list(match.could_be_from_charset)]
    is_candidate = any(_same_codec(default, name) for name in candidates)
    if best.coherence == 0 or (is_candidate and _decodes(data, default)):
        logger.debug("charset detection inconclusive ('%s'), using '%s'", best.encoding, default)
        return default
    return best.encoding


def _decodes(data: bytes, charset: str) -> bool:
    try:
        data.decode(charset)
    except (UnicodeDecodeError, LookupError):
        return False
    return True


def _same_codec(first: str, second: str) -> bool:
    try:
        return codecs.lookup(first).name == codecs.lookup(second).name
    except LookupError:
        return False


def decode(data: bytes, params: TextParams, path: str = '') -> str:
    """Decodes file content.

    Parameters
    ----------
    data : bytes
        Raw content.
    params : TextParams
        Text parameters.
    path : str, default=''
        Content origin, reported in errors.

    Returns
    -------
    str
        Decoded text.
    """
    charset = detect_charset(data, params.charset) if params.detect_charset else params.charset
    try:
        return data.decode(charset)
    except MemoryError as err:
        raise OutOfMemoryError(path) from err
    except (UnicodeDecodeError, LookupError) as err:
        raise IOFailureError(path, err) from err


def normalize_line_breaks(text: str, line_break: LineBreak) -> str:
    return LINE_BREAK_PATTERN.sub(line_break.value, text)


def encode(text: str, params: TextParams, path: str = '') -> bytes:
    """Normalizes line breaks and encodes text.

    Parameters
    ----------
    text : str
        Text to encode.
    params : TextParams
        Text parameters.
    path : str, default=''
        Content destination, reported in errors.

    Returns
    -------
    bytes
        Encoded content.
    """
    try:
        return normalize_line_breaks(text, params.line_break).encode(params.charset)
    except MemoryError as err:
        raise OutOfMemoryError(path) from err
    except (UnicodeEncodeError, LookupError) as err:
        raise IOFailureError(path, err) from err


def split_lines(text: str) -> list[str]:
    """Splits text on '\\n', '\\r' and '\\r\\n'; a trailing terminator adds no line."""
    lines = LINE_BREAK_PATTERN.split(text)
    if lines and lines[-1] == '':
        lines.pop()
    return lines
