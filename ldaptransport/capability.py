"""
Process-wide detection of the directory client library.

python-ldap is a C extension linked against libldap.  If it cannot be loaded,
every LDAP request fails the same way for the life of the process, so we
probe for it once and remember the answer.
"""

import importlib
import logging
import threading
from typing import ClassVar

logger = logging.getLogger(__name__)


class DirectoryCapability:
    """
    Lazily evaluated, thread-safe check that python-ldap is usable.

    The first call to :py:meth:`error` imports the python-ldap modules we
    depend on.  The outcome is cached at class level and every later call
    returns the cached value without probing again.
    """

    #: Modules that must import for the transport to work
    MODULES: ClassVar[tuple[str, ...]] = ("ldap", "ldapurl", "ldif")

    #: Thread lock for the cached result
    _lock = threading.Lock()
    _probed: ClassVar[bool] = False
    _error: ClassVar[str | None] = None

    @classmethod
    def _probe(cls) -> str | None:
        """
        Import each module in :py:attr:`MODULES`.

        Returns:
            ``None`` on success, otherwise the text of the import failure.

        """
        for name in cls.MODULES:
            try:
                module = importlib.import_module(name)
            except ImportError as e:
                logger.error(
                    "ldaptransport.capability.unavailable module=%s error=%s", name, e
                )
                return f"Unable to load {name}: {e}"
            logger.debug(
                "ldaptransport.capability.loaded module=%s version=%s",
                name,
                getattr(module, "__version__", "unknown"),
            )
        return None

    @classmethod
    def error(cls) -> str | None:
        """
        Return the reason the directory client is unavailable.

        Returns:
            ``None`` if python-ldap loaded, otherwise a human readable message.

        """
        with cls._lock:
            if not cls._probed:
                cls._error = cls._probe()
                cls._probed = True
            return cls._error

    @classmethod
    def available(cls) -> bool:
        """Return ``True`` if python-ldap can be used in this process."""
        return cls.error() is None

    @classmethod
    def reset(cls) -> None:
        """Forget the cached probe result.  Used by tests."""
        with cls._lock:
            cls._probed = False
            cls._error = None
