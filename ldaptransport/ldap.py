# This file is here so that we can patch the ldap module in our tests.
# python-ldap-faker patches ``<module>.ldap.initialize`` for each module named
# in ``ldap_modules``, so the session has to reach python-ldap through here.
import ldap
from ldap import *  # noqa: F403

__version__ = ldap.__version__
