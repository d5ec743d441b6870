"""
An httpx transport that answers ``ldap://``, ``ldaps://`` and ``ldapi://``
URLs by searching a directory server.

Mount it on an :py:class:`httpx.Client` and LDAP URLs become just another
thing you can ``GET``:

.. code-block:: python

    import httpx
    from ldaptransport import ldap_mounts

    with httpx.Client(mounts=ldap_mounts()) as client:
        response = client.get(
            "ldap://dir.example.com/dc=example,dc=com?cn,mail?sub?(uid=alice)",
            headers={"Accept": "application/json"},
        )
        print(response.json())

Every outcome, including failures, comes back as an :py:class:`httpx.Response`.
"""

import logging
import re
from typing import Any

import httpx
from ldap_filter import Filter

from .capability import DirectoryCapability
from .conf import TransportConfig
from .credentials import MalformedCredentials, resolve_credentials
from .negotiation import select_format

logger = logging.getLogger(__name__)

#: Schemes the transport will serve
SCHEME_RE = re.compile(r"^ldap[si]?$")

#: Methods that make sense for a read-only search
ALLOWED_METHODS = ("GET", "HEAD")


def error_response(
    request: httpx.Request,
    status_code: int,
    reason: str,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """
    Build a plain-text error response.

    Args:
        request: the request we are answering
        status_code: the HTTP status code
        reason: the reason phrase
        text: the body; defaults to ``reason``
        headers: extra headers to send

    Returns:
        The response.

    """
    content = (reason if text is None else text).encode("utf-8")
    response_headers = {
        "Content-Type": "text/plain",
        "Content-Length": str(len(content)),
    }
    if headers:
        response_headers.update(headers)
    return httpx.Response(
        status_code,
        headers=response_headers,
        content=content,
        request=request,
        extensions={"reason_phrase": reason.encode("ascii", "replace")},
    )


class LDAPTransport(httpx.BaseTransport):
    """
    Answer LDAP URLs with the results of a directory search.

    Each request gets its own connection, which is always unbound before the
    response is returned.  Nothing is pooled, so one transport can be shared
    between threads.

    Keyword Args:
        proxy: a proxy URL.  LDAP cannot be proxied, so a transport built with a
            proxy refuses every request.
        **options: overrides for :py:class:`~ldaptransport.conf.TransportConfig`

    Raises:
        django.core.exceptions.ImproperlyConfigured: the configuration is invalid

    """

    def __init__(self, proxy: httpx.URL | str | None = None, **options: Any) -> None:
        self.proxy = proxy
        self.config = TransportConfig(**options)
        self.config.validate()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        scheme = request.url.scheme
        method = request.method.upper()
        if self.proxy is not None:
            return error_response(request, 400, "You can not proxy through the ldap")
        if not SCHEME_RE.match(scheme):
            return error_response(
                request, 500, f"LDAPTransport called for '{scheme}'"
            )
        if method not in ALLOWED_METHODS:
            return error_response(
                request,
                501,
                f"Library does not allow method {method} for '{scheme}:' URLs",
            )
        init_error = DirectoryCapability.error()
        if init_error:
            return error_response(
                request, 500, "LDAP client library is unavailable", init_error
            )
        return self._search(request, method)

    def _search(  # noqa: PLR0911
        self, request: httpx.Request, method: str
    ) -> httpx.Response:
        # python-ldap is only safe to import once the capability check passed
        from .renderers import render
        from .session import DirectoryError, DirectorySession
        from .url import DirectoryURL, InvalidDirectoryURL

        try:
            url = DirectoryURL.from_url(request.url)
        except InvalidDirectoryURL as e:
            return error_response(request, 400, "Invalid LDAP URL", str(e))
        try:
            credentials = resolve_credentials(
                url.user_info,
                request.headers,
                strict=self.config.strict_basic_auth,
            )
        except MalformedCredentials as e:
            return error_response(
                request,
                401,
                "Unauthorized",
                str(e),
                headers={"WWW-Authenticate": 'Basic realm="ldap"'},
            )
        output_format = select_format(url.requested_format, request.headers)
        if self.config.validate_filter and url.filter:
            filter_error = self._check_filter(url.filter)
            if filter_error:
                return error_response(
                    request, 400, "Invalid LDAP filter", filter_error
                )

        session = DirectorySession(
            url.connection_url,
            self.config,
            timeout=request.extensions.get("timeout"),
        )
        try:
            with session:
                if url.use_starttls:
                    session.start_tls()
                if credentials and credentials.user:
                    session.bind(credentials.user, credentials.password)
                results = session.search(
                    url.dn, url.scope, url.filter, url.attributes or None
                )
                rendered = render(results, output_format)
        except DirectoryError as e:
            return error_response(request, 400, e.reason, e.text)

        logger.debug(
            "ldaptransport.transport.response uri=%s format=%s length=%d",
            url.connection_url,
            output_format.value,
            len(rendered.content),
        )
        return httpx.Response(
            200,
            headers=[
                ("Content-Type", rendered.media_type),
                ("Content-Length", str(len(rendered.content))),
            ],
            content=b"" if method == "HEAD" else rendered.content,
            request=request,
            extensions={"reason_phrase": b"Document follows"},
        )

    def _check_filter(self, filterstr: str) -> str | None:
        """
        Parse ``filterstr`` with :py:mod:`ldap_filter`.

        Returns:
            ``None`` if the filter parsed, otherwise the parser's complaint.

        """
        try:
            Filter.parse(filterstr)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "ldaptransport.transport.invalid_filter filter=%s error=%s",
                filterstr,
                e,
            )
            return str(e) or f"Could not parse filter {filterstr}"
        return None


def ldap_mounts(
    transport: LDAPTransport | None = None,
) -> dict[str, httpx.BaseTransport]:
    """
    Return an ``httpx`` ``mounts`` dict that routes every LDAP scheme to
    ``transport``.

    Args:
        transport: the transport to mount; a default one is built if omitted

    Returns:
        A dict suitable for ``httpx.Client(mounts=...)``.

    """
    if transport is None:
        transport = LDAPTransport()
    return {f"{scheme}://": transport for scheme in ("ldap", "ldaps", "ldapi")}
