"""
Configuration for the LDAP transport.

Settings are read from Django settings with the ``LDAPTRANSPORT_`` prefix and
can be overridden per transport with keyword arguments.  When Django settings
have not been configured, the defaults below are used.
"""

import logging
from pathlib import Path
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

#: Prefix for every Django setting we look at
SETTINGS_PREFIX = "LDAPTRANSPORT_"

#: Setting name (without prefix) -> default value
DEFAULTS: dict[str, Any] = {
    "TIMEOUT": 15.0,
    "FOLLOW_REFERRALS": False,
    "SIZELIMIT": None,
    "TLS_VERIFY": "never",
    "TLS_CA_CERTFILE": None,
    "STRICT_BASIC_AUTH": False,
    "VALIDATE_FILTER": False,
}

TLS_VERIFY_CHOICES = ("never", "always")


def get_setting(name: str, default: Any = None) -> Any:
    """
    Get a configuration value from Django settings with fallback.

    Args:
        name: Name of the setting (without the ``LDAPTRANSPORT_`` prefix)
        default: Value to return if the setting is not found

    Returns:
        The configured value, or ``default``.

    """
    if not settings.configured:
        return default
    return getattr(settings, f"{SETTINGS_PREFIX}{name}", default)


class TransportConfig:
    """
    The effective configuration for one :py:class:`LDAPTransport`.

    Each setting in :py:data:`DEFAULTS` becomes a lower-cased attribute on the
    instance.  Keyword arguments win over Django settings, which win over the
    defaults.

    Keyword Args:
        timeout: fallback network and operation timeout, in seconds
        follow_referrals: whether python-ldap should chase referrals
        sizelimit: client-side size limit for searches
        tls_verify: ``"never"`` or ``"always"``
        tls_ca_certfile: path to a CA bundle used for certificate checks
        strict_basic_auth: reject malformed ``Authorization: Basic`` headers
        validate_filter: parse filters with :py:mod:`ldap_filter` before connecting

    Raises:
        TypeError: an unknown keyword argument was given

    """

    def __init__(self, **overrides: Any) -> None:
        for name, default in DEFAULTS.items():
            key = name.lower()
            if key in overrides:
                value = overrides.pop(key)
            else:
                value = get_setting(name, default)
            setattr(self, key, value)
        if overrides:
            msg = f"Unknown LDAP transport options: {', '.join(sorted(overrides))}"
            raise TypeError(msg)

    def validate(self) -> None:
        """
        Validate the configuration for consistency.

        Raises:
            ImproperlyConfigured: If the configuration is invalid

        """
        if self.tls_verify not in TLS_VERIFY_CHOICES:
            msg = f"Invalid tls_verify value: {self.tls_verify}"
            raise ImproperlyConfigured(msg)
        try:
            timeout = float(self.timeout)
        except (TypeError, ValueError) as e:
            msg = f"LDAPTRANSPORT_TIMEOUT ({self.timeout!r}) must be a number"
            raise ImproperlyConfigured(msg) from e
        if timeout <= 0:
            msg = f"LDAPTRANSPORT_TIMEOUT ({self.timeout}) must be positive"
            raise ImproperlyConfigured(msg)
        if self.sizelimit is not None and int(self.sizelimit) < 0:
            msg = f"LDAPTRANSPORT_SIZELIMIT ({self.sizelimit}) cannot be negative"
            raise ImproperlyConfigured(msg)
        if self.tls_ca_certfile:
            ca_certfile = Path(self.tls_ca_certfile)
            if not ca_certfile.exists():
                msg = f"CA Certificate file does not exist: {self.tls_ca_certfile}"
                raise ImproperlyConfigured(msg)
            if not ca_certfile.is_file():
                msg = f"CA Certificate file is not a file: {self.tls_ca_certfile}"
                raise ImproperlyConfigured(msg)
        logger.debug(
            "ldaptransport.conf.validated timeout=%s tls_verify=%s",
            self.timeout,
            self.tls_verify,
        )

    def __repr__(self) -> str:
        options = ", ".join(
            f"{name.lower()}={getattr(self, name.lower())!r}" for name in DEFAULTS
        )
        return f"TransportConfig({options})"
