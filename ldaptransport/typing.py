"""
Type aliases for the data that flows through the LDAP transport.
"""

LDAPAttributes = dict[str, list[bytes]]
LDAPData = tuple[str, LDAPAttributes]
SearchResults = list[LDAPData]
JSONEntries = dict[str, dict[str, list[str]]]
