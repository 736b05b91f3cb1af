"""Value coercion and metric-name helpers shared by the scrapers."""

import logging
import math
import re
from typing import Any, Optional, Union

_INT_RE = re.compile(r'^[+-]?\d+$')
_FLOAT_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}

DOTTED_CHUNKS = re.compile(r'[0-9A-Za-z.]+')
PLAIN_CHUNKS = re.compile(r'[0-9A-Za-z]+')
_WORD_START = re.compile(r'(^|\.)([a-z])')


def as_value(value: str) -> Union[int, float, bool, str]:
    """
    Coerce a raw string into the most specific scalar it represents.

    Tries int, then float, then bool, and falls back to the string itself.

    Args:
        value: Raw string from a status payload

    Returns:
        int, float, bool or the unchanged string
    """
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        number = float(value)
        if math.isfinite(number):
            return number
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return value


def to_int(value: Optional[str], logger: Optional[logging.Logger] = None) -> int:
    """
    Convert a string to int, mapping empty or invalid input to 0.

    Args:
        value: Raw string value
        logger: Optional logger for conversion failures

    Returns:
        int: Parsed value or 0
    """
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        if logger:
            logger.debug(f"Error converting {value!r} to int: {e}")
        return 0


def to_float(value: Optional[str], logger: Optional[logging.Logger] = None) -> float:
    """
    Convert a string to float, mapping empty or invalid input to 0.0.

    Args:
        value: Raw string value
        logger: Optional logger for conversion failures

    Returns:
        float: Parsed value or 0.0
    """
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        if logger:
            logger.debug(f"Error converting {value!r} to float: {e}")
        return 0.0
    return number if math.isfinite(number) else 0.0


def camel_case(src: str, chunks: re.Pattern = DOTTED_CHUNKS) -> str:
    """
    Turn a snake_case or colon separated name into a camelCase metric name.

    Colons become dots. Every chunk after the first has the letter after
    each word boundary upper-cased.

    Args:
        src: Source name, e.g. "Innodb_buffer_pool_pages"
        chunks: Pattern matching the runs kept in the result

    Returns:
        str: camelCase name, e.g. "InnodbBufferPoolPages"
    """
    parts = chunks.findall(src.replace(":", "."))
    return "".join(
        part if idx == 0 else _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), part)
        for idx, part in enumerate(parts)
    )


def mean(samples: Any) -> float:
    """Average of the numeric entries of a sample list, 0 when there are none."""
    numbers = [
        s for s in (samples or [])
        if isinstance(s, (int, float)) and not isinstance(s, bool)
    ]
    if not numbers:
        return 0
    return sum(numbers) / len(numbers)
