"""
Decomposition of ``ldap://``, ``ldaps://`` and ``ldapi://`` request URLs.

The heavy lifting is done by python-ldap's :py:class:`ldapurl.LDAPUrl`; this
module adapts an :py:class:`httpx.URL` to it and exposes just the parts the
transport needs.
"""

from urllib.parse import unquote

import httpx
import ldapurl

from ldaptransport import ldap

#: Extensions we know how to honor.  Critical extensions outside this set
#: make the URL unusable.
KNOWN_EXTENSIONS = ("x-tls", "x-format")

SCOPE_NAMES: dict[int, str] = {
    ldap.SCOPE_BASE: "base",
    ldap.SCOPE_ONELEVEL: "one",
    ldap.SCOPE_SUBTREE: "sub",
}
if hasattr(ldap, "SCOPE_SUBORDINATE"):
    SCOPE_NAMES[ldap.SCOPE_SUBORDINATE] = "subordinates"


class InvalidDirectoryURL(ValueError):
    """The request URL could not be interpreted as an LDAP URL."""


class DirectoryURL:
    """
    The parts of an LDAP URL (RFC 4516) that drive one directory search.

    Args:
        ldap_url: the parsed python-ldap URL
        user_info: ``user:password`` from the URL authority, if any

    """

    def __init__(self, ldap_url: ldapurl.LDAPUrl, user_info: str | None = None) -> None:
        self.ldap_url = ldap_url
        #: ``ldap``, ``ldaps`` or ``ldapi``
        self.scheme: str = ldap_url.urlscheme
        #: Base DN for the search; empty means the server default
        self.dn: str = ldap_url.dn or ""
        #: Attributes to return; empty means all of them
        self.attributes: list[str] = list(ldap_url.attrs or [])
        #: One of the ``ldap.SCOPE_*`` constants
        self.scope: int = (
            ldap_url.scope if ldap_url.scope is not None else ldap.SCOPE_BASE
        )
        #: The search filter, or ``None`` for the server default
        self.filter: str | None = ldap_url.filterstr or None
        self.user_info: str | None = user_info
        #: Extension name (lower-cased) -> value
        self.extensions: dict[str, str | None] = {}
        #: Names of extensions that were marked critical with ``!``
        self.critical: set[str] = set()
        for extension in (ldap_url.extensions or {}).values():
            name = extension.extype.lower()
            self.extensions[name] = extension.exvalue
            if extension.critical:
                self.critical.add(name)

    @classmethod
    def from_url(cls, url: httpx.URL) -> "DirectoryURL":
        """
        Build a :py:class:`DirectoryURL` from the URL of an httpx request.

        The user-info part of the authority is not part of RFC 4516, so we
        strip it before handing the rest to :py:class:`ldapurl.LDAPUrl`.

        Args:
            url: the request URL

        Raises:
            InvalidDirectoryURL: ``url`` is not a usable LDAP URL

        Returns:
            The decomposed URL.

        """
        user_info: str | None = None
        if url.userinfo:
            user_info = unquote(url.userinfo.decode("ascii"))
        netloc = url.netloc.decode("ascii")
        path = url.raw_path.decode("ascii")
        try:
            ldap_url = ldapurl.LDAPUrl(f"{url.scheme}://{netloc}{path}")
        except (ValueError, KeyError) as e:
            msg = f"Invalid LDAP URL {url.scheme}://{netloc}{path}: {e}"
            raise InvalidDirectoryURL(msg) from e
        directory_url = cls(ldap_url, user_info=user_info)
        unknown = sorted(directory_url.critical.difference(KNOWN_EXTENSIONS))
        if unknown:
            msg = f"Unsupported critical extension(s): {', '.join(unknown)}"
            raise InvalidDirectoryURL(msg)
        return directory_url

    @property
    def connection_url(self) -> str:
        """The ``scheme://hostport`` string to pass to ``ldap.initialize``."""
        return self.ldap_url.initializeUrl()

    @property
    def scope_name(self) -> str:
        return SCOPE_NAMES.get(self.scope, str(self.scope))

    @property
    def use_starttls(self) -> bool:
        """``True`` if StartTLS was asked for and the connection is not ``ldaps``."""
        return "x-tls" in self.extensions and self.scheme != "ldaps"

    @property
    def requested_format(self) -> str | None:
        return self.extensions.get("x-format")

    def __repr__(self) -> str:
        return f"DirectoryURL({self.ldap_url.unparse()!r})"
