"""
Fetch LDAP URLs with httpx.

:py:class:`LDAPTransport` is an httpx transport that turns ``ldap://``,
``ldaps://`` and ``ldapi://`` URLs into directory searches and returns the
results as HTML, LDIF or JSON.
"""

from .credentials import Credentials
from .negotiation import OutputFormat
from .transport import LDAPTransport, ldap_mounts

__version__ = "1.0.0"

__all__ = ["Credentials", "LDAPTransport", "OutputFormat", "ldap_mounts"]
