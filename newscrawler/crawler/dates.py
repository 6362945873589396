"""
Date format patterns used in website configurations.

A pattern is a layout string containing placeholder tokens, e.g.
"{MONTH_NUM}-{DAY_NUM}-{YEAR_LONG}", translated into a strptime format.
"""
import re
from datetime import datetime
from functools import lru_cache

from newscrawler.crawler.errors import FieldExtractionError

DATE_TOKENS = {
    "YEAR_LONG": "%Y",
    "YEAR_SHORT": "%y",
    "MONTH_NUM": "%m",
    "MONTH_NAME": "%B",
    "MONTH_NAME_SHORT": "%b",
    "DAY_NUM": "%d",
    "DAY_NAME": "%A",
    "DAY_NAME_SHORT": "%a",
    "HOUR": "%H",
    "HOUR_12": "%I",
    "MINUTE": "%M",
    "SECOND": "%S",
    "AM_PM": "%p",
    "TZ_OFFSET": "%z",
    "TZ_NAME": "%Z",
}

_TOKEN_RE = re.compile(r"\{([A-Z_0-9]+)\}")


@lru_cache(maxsize=128)
def translate_date_format(pattern: str) -> str:
    """
    Translate a date format pattern into a strptime format string.

    Raises:
        ValueError: If the pattern uses an unknown token or no token at all
    """
    parts = []
    position = 0
    found = False
    for match in _TOKEN_RE.finditer(pattern):
        token = match.group(1)
        if token not in DATE_TOKENS:
            raise ValueError(f"unknown date format token {{{token}}}")
        parts.append(pattern[position:match.start()].replace("%", "%%"))
        parts.append(DATE_TOKENS[token])
        position = match.end()
        found = True

    if not found:
        raise ValueError(f"date format {pattern!r} contains no token")

    parts.append(pattern[position:].replace("%", "%%"))
    return "".join(parts)


def parse_date(text: str, pattern: str) -> datetime:
    """
    Parse a date as displayed on a website.

    Args:
        text: The trimmed date text
        pattern: The website's date format pattern

    Returns:
        The parsed datetime

    Raises:
        FieldExtractionError: If the text doesn't match the pattern
    """
    try:
        return datetime.strptime(text, translate_date_format(pattern))
    except ValueError as e:
        raise FieldExtractionError(
            f"could not parse date {text!r} with format {pattern!r}: {e}"
        ) from e
