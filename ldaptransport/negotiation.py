"""
Choose the representation to render search results in.
"""

import enum
import re
from collections.abc import Mapping


class OutputFormat(enum.Enum):
    """The closed set of representations we can render a result set as."""

    HTML = "html"
    LDIF = "ldif"
    JSON = "json"


LDIF_ACCEPT_RE = re.compile(r"\btext/(x-)?ldif\b", re.IGNORECASE)
JSON_ACCEPT_RE = re.compile(r"\b(?:text|application)/json\b", re.IGNORECASE)


def select_format(
    requested: str | None, headers: Mapping[str, str]
) -> OutputFormat:
    """
    Pick the output format for a request.

    ``HTML`` is the default.  The ``x-format`` URL extension can ask for
    ``ldif`` or ``json`` (anything else means ``html``), and the ``Accept``
    header overrides both.  If ``Accept`` lists both LDIF and JSON, JSON wins.

    Args:
        requested: value of the ``x-format`` URL extension, if any
        headers: the request headers; lookups must be case-insensitive

    Returns:
        The format to render in.

    """
    try:
        output_format = OutputFormat((requested or "html").lower())
    except ValueError:
        output_format = OutputFormat.HTML
    accept = headers.get("Accept")
    if accept:
        if LDIF_ACCEPT_RE.search(accept):
            output_format = OutputFormat.LDIF
        if JSON_ACCEPT_RE.search(accept):
            output_format = OutputFormat.JSON
    return output_format
