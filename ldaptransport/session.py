"""
One directory conversation: connect, maybe StartTLS, maybe bind, search, unbind.

A :py:class:`DirectorySession` is built for a single request and thrown away
afterwards.  It is a context manager so that the connection is released on
every way out of the ``with`` block.
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from ldaptransport import ldap

from .conf import TransportConfig
from .typing import SearchResults

logger = logging.getLogger(__name__)

#: Filter used when the URL does not carry one
DEFAULT_FILTER = "(objectClass=*)"


# -----------------------
# Exceptions
# -----------------------


class DirectoryError(Exception):
    """
    A directory operation failed.

    Args:
        text: the diagnostic text reported by the server or the client library

    Keyword Args:
        code: the LDAP result code, or ``-1`` if there was none

    """

    def __init__(self, text: str, code: int = -1) -> None:
        super().__init__(text)
        self.text = text
        self.code = code

    @property
    def reason(self) -> str:
        return f"LDAP return code {self.code}"


class DirectoryConnectError(DirectoryError):
    """We could not open a connection to the directory server."""

    @property
    def reason(self) -> str:
        return "Connection to LDAP server failed"


class DirectoryOperationError(DirectoryError):
    """The directory server rejected StartTLS, a bind or a search."""


def describe_ldap_error(exc: Exception) -> tuple[int, str]:
    """
    Pull the result code and the most useful diagnostic text out of a
    python-ldap exception.

    python-ldap puts a dict in ``exc.args[0]`` with ``result``, ``desc`` and
    usually ``info`` keys.  ``info`` is what the server said, so we prefer it.

    Args:
        exc: the exception raised by python-ldap

    Returns:
        A ``(code, text)`` tuple.  ``code`` is ``-1`` if unknown.

    """
    details: Any = exc.args[0] if exc.args else None
    if not isinstance(details, dict):
        return -1, str(exc)
    code = details.get("result", -1)
    info = details.get("info")
    if isinstance(info, (tuple, list)):
        info = " ".join(str(part) for part in info)
    text = info or details.get("desc") or str(exc)
    return int(code), str(text)


# -----------------------
# Decorators
# -----------------------


def ldap_operation(step: str) -> Callable:
    """
    Decorator to translate python-ldap exceptions raised by a session step
    into :py:class:`DirectoryError` subclasses.

    ``ldap.SERVER_DOWN`` and ``ldap.CONNECT_ERROR`` become
    :py:class:`DirectoryConnectError` because python-ldap only really opens the
    socket on the first operation.  Every other ``ldap.LDAPError`` becomes a
    :py:class:`DirectoryOperationError`.

    Args:
        step: name of the step, used in log messages

    Returns:
        A decorator for :py:class:`DirectorySession` methods.

    """

    def real_decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> Any:
            try:
                return func(self, *args, **kwargs)
            except (ldap.SERVER_DOWN, ldap.CONNECT_ERROR) as e:  # type: ignore[attr-defined]
                code, text = describe_ldap_error(e)
                logger.warning(
                    "ldaptransport.session.%s.unreachable uri=%s code=%s error=%s",
                    step,
                    self.uri,
                    code,
                    text,
                )
                raise DirectoryConnectError(text, code=code) from e
            except ldap.LDAPError as e:  # type: ignore[attr-defined]
                code, text = describe_ldap_error(e)
                logger.warning(
                    "ldaptransport.session.%s.failed uri=%s code=%s error=%s",
                    step,
                    self.uri,
                    code,
                    text,
                )
                raise DirectoryOperationError(text, code=code) from e

        return wrapper

    return real_decorator


# -----------------------
# Session
# -----------------------


class DirectorySession:
    """
    Drive a single LDAP connection through one search.

    Example:
        .. code-block:: python

            with DirectorySession("ldap://dir.example.com", config) as session:
                session.start_tls()
                session.bind("uid=alice,ou=people,dc=example,dc=com", "secret")
                results = session.search("dc=example,dc=com", ldap.SCOPE_SUBTREE)

    Args:
        uri: ``scheme://hostport`` of the directory server
        config: the transport configuration

    Keyword Args:
        timeout: httpx-style timeout dict (``connect``, ``read``, ...).  Values
            that are missing or ``None`` fall back to ``config.timeout``.

    """

    def __init__(
        self,
        uri: str,
        config: TransportConfig,
        timeout: dict[str, float | None] | None = None,
    ) -> None:
        self.uri = uri
        self.config = config
        self.timeout = timeout or {}
        #: The python-ldap connection; only set between :py:meth:`open` and
        #: :py:meth:`close`
        self.connection: ldap.ldapobject.LDAPObject | None = None  # type: ignore[name-defined]
        self.tls_started: bool = False
        self.bound_as: str | None = None

    def _timeout(self, key: str) -> float:
        value = self.timeout.get(key)
        if value is None:
            value = self.config.timeout
        return float(value)

    def _configure(self, ldap_object: ldap.ldapobject.LDAPObject) -> None:  # type: ignore[name-defined]
        """
        Set connection options on a freshly initialized LDAP object.

        Args:
            ldap_object: the object returned by ``ldap.initialize``

        """
        ldap_object.set_option(ldap.OPT_PROTOCOL_VERSION, ldap.VERSION3)  # type: ignore[attr-defined]
        if self.config.follow_referrals:
            ldap_object.set_option(ldap.OPT_REFERRALS, 1)  # type: ignore[attr-defined]
        else:
            ldap_object.set_option(ldap.OPT_REFERRALS, 0)  # type: ignore[attr-defined]
        ldap_object.set_option(ldap.OPT_NETWORK_TIMEOUT, self._timeout("connect"))  # type: ignore[attr-defined]
        ldap_object.set_option(ldap.OPT_TIMEOUT, self._timeout("read"))  # type: ignore[attr-defined]
        if self.config.sizelimit:
            ldap_object.set_option(ldap.OPT_SIZELIMIT, int(self.config.sizelimit))  # type: ignore[attr-defined]
        if self.config.tls_verify == "always":
            ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND)  # type: ignore[attr-defined]
        else:
            ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER)  # type: ignore[attr-defined]
        if self.config.tls_ca_certfile:
            ldap_object.set_option(ldap.OPT_X_TLS_CACERTFILE, str(self.config.tls_ca_certfile))  # type: ignore[attr-defined]
        # Must come last so that the TLS options above take effect
        ldap_object.set_option(ldap.OPT_X_TLS_NEWCTX, 0)  # type: ignore[attr-defined]

    def open(self) -> None:
        """
        Create the python-ldap connection object and configure it.

        The connection object is only kept if every step succeeds, so a failed
        :py:meth:`open` leaves nothing for :py:meth:`close` to release.

        Raises:
            DirectoryConnectError: the URI was rejected or an option could not
                be set

        """
        try:
            ldap_object = ldap.initialize(self.uri)
            self._configure(ldap_object)
        except (ldap.LDAPError, ValueError, TypeError) as e:  # type: ignore[attr-defined]
            if isinstance(e, ldap.LDAPError):  # type: ignore[attr-defined]
                code, text = describe_ldap_error(e)
            else:
                code, text = -1, str(e)
            logger.warning(
                "ldaptransport.session.connect.failed uri=%s error=%s", self.uri, text
            )
            raise DirectoryConnectError(text, code=code) from e
        self.connection = ldap_object
        logger.debug("ldaptransport.session.connect.success uri=%s", self.uri)

    @ldap_operation("starttls")
    def start_tls(self) -> None:
        """
        Upgrade the connection with the StartTLS extended operation.

        Raises:
            DirectoryOperationError: the server refused to negotiate TLS

        """
        self._require_connection().start_tls_s()
        self.tls_started = True
        logger.debug("ldaptransport.session.starttls.success uri=%s", self.uri)

    @ldap_operation("bind")
    def bind(self, user: str, password: str | None) -> None:
        """
        Do a simple bind.

        Args:
            user: the bind DN (or whatever name the server accepts)
            password: the password; ``None`` is sent as an empty password

        Raises:
            DirectoryOperationError: the bind was rejected

        """
        self._require_connection().simple_bind_s(user, password or "")
        self.bound_as = user
        logger.info("ldaptransport.session.bind.success uri=%s user=%s", self.uri, user)

    @ldap_operation("search")
    def search(
        self,
        base: str,
        scope: int,
        filterstr: str | None = None,
        attrlist: list[str] | None = None,
    ) -> SearchResults:
        """
        Search the directory and return every entry found.

        Args:
            base: the base DN; ``""`` means the server default
            scope: one of the ``ldap.SCOPE_*`` constants
            filterstr: the search filter; ``None`` means :py:data:`DEFAULT_FILTER`
            attrlist: the attributes to return; ``None`` or empty means all

        Raises:
            DirectoryOperationError: the search failed

        Returns:
            A list of ``(dn, attributes)`` tuples in the order the server sent
            them.

        """
        data = self._require_connection().search_s(
            base,
            scope,
            filterstr=filterstr or DEFAULT_FILTER,
            attrlist=attrlist or None,
        )
        # We have to filter out any references that AD puts in
        results = [(dn, attrs) for dn, attrs in data if isinstance(attrs, dict)]
        logger.info(
            "ldaptransport.session.search.success uri=%s base=%s filter=%s entries=%d",
            self.uri,
            base,
            filterstr,
            len(results),
        )
        return results

    def close(self) -> None:
        """
        Unbind and drop the connection.  Safe to call more than once.
        """
        if self.connection is None:
            return
        connection, self.connection = self.connection, None
        try:
            connection.unbind_s()
        except ldap.LDAPError as e:  # type: ignore[attr-defined]
            code, text = describe_ldap_error(e)
            logger.warning(
                "ldaptransport.session.unbind.failed uri=%s code=%s error=%s",
                self.uri,
                code,
                text,
            )
        else:
            logger.debug("ldaptransport.session.unbind.success uri=%s", self.uri)

    def _require_connection(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
        if self.connection is None:
            msg = "DirectorySession is not open"
            raise RuntimeError(msg)
        return self.connection

    def __enter__(self) -> "DirectorySession":
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        # We do this in __exit__ so that the connection gets released no
        # matter what happens inside the with block.
        self.close()
