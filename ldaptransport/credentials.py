"""
Work out who we should bind to the directory as.
"""

import binascii
import logging
import re
from base64 import b64decode as decode
from collections import namedtuple
from collections.abc import Mapping

logger = logging.getLogger(__name__)

#: ``Authorization`` header carrying HTTP Basic credentials
BASIC_AUTH_RE = re.compile(r"^Basic\s+([A-Z0-9+/=]+)$", re.IGNORECASE)

Credentials = namedtuple("Credentials", ["user", "password"])


class MalformedCredentials(ValueError):
    """The ``Authorization: Basic`` token could not be decoded."""


def split_user_info(user_info: str) -> Credentials:
    """
    Split a ``user:password`` string on the first colon.

    Args:
        user_info: the string to split

    Returns:
        The user and password; the password is ``None`` if there was no colon.

    """
    user, sep, password = user_info.partition(":")
    return Credentials(user, password if sep else None)


def decode_basic_authorization(header: str) -> Credentials | None:
    """
    Decode an ``Authorization`` header using the Basic scheme.

    Args:
        header: the full header value, e.g. ``Basic YWxpY2U6c2VjcmV0``

    Raises:
        MalformedCredentials: the header is a Basic header but its token is not
            valid base64-encoded UTF-8

    Returns:
        The decoded credentials, or ``None`` if the header does not use the
        Basic scheme.

    """
    match = BASIC_AUTH_RE.match(header.strip())
    if not match:
        return None
    try:
        user_info = decode(match.group(1), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        msg = f"Invalid Basic authorization token: {e}"
        raise MalformedCredentials(msg) from e
    return split_user_info(user_info)


def resolve_credentials(
    user_info: str | None,
    headers: Mapping[str, str],
    strict: bool = False,
) -> Credentials | None:
    """
    Determine the bind identity for a request.

    URL user-info wins.  If it does not name a user, we fall back to an
    ``Authorization: Basic`` header.  Anything else means an anonymous search.

    Args:
        user_info: ``user:password`` from the request URL, if any
        headers: the request headers; lookups must be case-insensitive

    Keyword Args:
        strict: if ``True``, re-raise :py:exc:`MalformedCredentials` instead of
            falling back to an anonymous search

    Raises:
        MalformedCredentials: ``strict`` is set and the Basic token is garbage

    Returns:
        The credentials to bind with, or ``None`` to stay anonymous.

    """
    if user_info:
        credentials = split_user_info(user_info)
        if credentials.user:
            return credentials
    authorization = headers.get("Authorization")
    if not authorization:
        return None
    try:
        return decode_basic_authorization(authorization)
    except MalformedCredentials as e:
        if strict:
            raise
        logger.warning("ldaptransport.credentials.malformed error=%s", e)
        return None
