"""
End to end tests for LDAPTransport against python-ldap-faker.
"""

import json
import unittest

import httpx
from django.conf import settings
from ldap_faker.unittest import LDAPFakerMixin

from ldaptransport import LDAPTransport, ldap_mounts
from ldaptransport.capability import DirectoryCapability

if not settings.configured:
    settings.configure()


class TestLDAPTransportWithFaker(LDAPFakerMixin, unittest.TestCase):
    """Test suite for LDAPTransport using python-ldap-faker."""

    ldap_modules = ['ldaptransport']

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.test_data = [
            [
                "ou=people,dc=example,dc=com",
                {
                    "ou": [b"people"],
                    "objectclass": [b"organizationalUnit", b"top"],
                },
            ],
            [
                "uid=alice,ou=people,dc=example,dc=com",
                {
                    "uid": [b"alice"],
                    "cn": [b"Alice Johnson"],
                    "sn": [b"Johnson"],
                    "mail": [b"alice@example.com"],
                    "userPassword": [b"secret"],
                    "objectclass": [b"inetOrgPerson", b"top"],
                },
            ],
            [
                "uid=bob,ou=people,dc=example,dc=com",
                {
                    "uid": [b"bob"],
                    "cn": [b"Bob Smith"],
                    "sn": [b"Smith"],
                    "userPassword": [b"hunter2"],
                    "objectclass": [b"inetOrgPerson", b"top"],
                },
            ],
        ]

    def setUp(self):
        super().setUp()
        DirectoryCapability.reset()
        self.addCleanup(DirectoryCapability.reset)

        # Clear the fake LDAP directory before each test
        self.server_factory.default.raw_objects.clear()  # type: ignore[attr-defined]
        self.server_factory.default.objects.clear()  # type: ignore[attr-defined]

        # Reload test data before each test
        for dn, attrs in self.test_data:
            self.server_factory.default.register_object((dn, attrs))  # type: ignore[attr-defined]

        self.client = httpx.Client(mounts=ldap_mounts(LDAPTransport()))
        self.addCleanup(self.client.close)

    def test_subtree_search_as_json(self):
        response = self.client.get(
            "ldap://localhost/ou=people,dc=example,dc=com?cn,mail?sub?(mail=*)",
            headers={"Accept": "application/json"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Content-Type"], "text/json; charset=utf-8")
        self.assertEqual(
            response.json(),
            {
                "uid=alice,ou=people,dc=example,dc=com": {
                    "cn": ["Alice Johnson"],
                    "mail": ["alice@example.com"],
                },
            },
        )

    def test_one_level_search_as_html(self):
        response = self.client.get(
            "ldap://localhost/ou=people,dc=example,dc=com?uid?one"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Content-Type"], "text/html")
        self.assertTrue(response.text.endswith("2 Matches found"))

    def test_base_search_as_ldif(self):
        response = self.client.get(
            "ldap://localhost/uid=bob,ou=people,dc=example,dc=com?cn????x-format=ldif"
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Content-Type"], "text/ldif")
        self.assertTrue(response.text.startswith("version: 1\n"))
        self.assertIn("cn: Bob Smith\n", response.text)

    def test_no_matches(self):
        response = self.client.get(
            "ldap://localhost/ou=people,dc=example,dc=com??sub?(uid=nobody)",
            headers={"Accept": "application/json"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(json.loads(response.content), {})

    def test_bind_with_url_credentials(self):
        url = httpx.URL(
            "ldap://localhost/ou=people,dc=example,dc=com?cn?sub?(uid=alice)"
        ).copy_with(
            username="uid=alice,ou=people,dc=example,dc=com", password="secret"
        )
        response = self.client.get(url)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.text.endswith("1 Match found"))

    def test_bind_with_basic_auth(self):
        response = self.client.get(
            "ldap://localhost/ou=people,dc=example,dc=com?cn?sub?(uid=bob)",
            auth=("uid=bob,ou=people,dc=example,dc=com", "hunter2"),
        )
        self.assertEqual(response.status_code, 200)

    def test_bad_password(self):
        response = self.client.get(
            "ldap://localhost/ou=people,dc=example,dc=com?cn?sub?(uid=bob)",
            auth=("uid=bob,ou=people,dc=example,dc=com", "wrong"),
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.reason_phrase, "LDAP return code 49")

    def test_missing_base(self):
        response = self.client.get("ldap://localhost/ou=nowhere,dc=example,dc=com")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.reason_phrase, "LDAP return code 32")


if __name__ == "__main__":
    unittest.main()
