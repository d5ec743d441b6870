"""
Tests for the HTML, LDIF and JSON renderers.
"""

import json
import unittest

from django.conf import settings

from ldaptransport.negotiation import OutputFormat
from ldaptransport.renderers import (
    HTML_MEDIA_TYPE,
    JSON_MEDIA_TYPE,
    LDIF_MEDIA_TYPE,
    RENDERERS,
    render,
    render_html,
    render_json,
    render_ldif,
    value_as_text,
)

if not settings.configured:
    settings.configure()


ALICE = (
    "uid=alice,ou=people,dc=example,dc=com",
    {
        "mail": [b"alice@example.com"],
        "cn": [b"Alice Johnson"],
        "labeledURI": [b"https://example.com/~alice", b"https://alice.example.org"],
    },
)
BOB = (
    "uid=bob,ou=people,dc=example,dc=com",
    {"cn": [b"Bob <Smith> & Sons"]},
)


class TestValueAsText(unittest.TestCase):
    def test_utf8(self):
        self.assertEqual(value_as_text("Zoë".encode()), "Zoë")

    def test_binary_is_base64(self):
        self.assertEqual(value_as_text(b"\xff\xd8\xff"), "/9j/")

    def test_str_is_unchanged(self):
        self.assertEqual(value_as_text("plain"), "plain")


class TestRenderHTML(unittest.TestCase):
    def test_no_entries(self):
        rendered = render_html([])
        text = rendered.content.decode("utf-8")
        self.assertEqual(rendered.media_type, HTML_MEDIA_TYPE)
        self.assertNotIn("<table>", text)
        self.assertTrue(text.endswith("No Matches found"))

    def test_single_entry(self):
        text = render_html([ALICE]).content.decode("utf-8")
        self.assertEqual(text.count("<table>"), 1)
        self.assertIn(
            '<tr><th colspan="2">uid=alice,ou=people,dc=example,dc=com</th></tr>', text
        )
        self.assertTrue(text.endswith("1 Match found"))

    def test_multiple_entries(self):
        text = render_html([ALICE, BOB]).content.decode("utf-8")
        self.assertEqual(text.count("<table>"), 1)
        self.assertEqual(text.count("<hr>&nbsp;"), 1)
        self.assertIn("</table><hr>2 Matches found", text)

    def test_multi_valued_attributes_span_rows(self):
        text = render_html([ALICE]).content.decode("utf-8")
        self.assertIn('rowspan="2">labeledURI&nbsp;</td>', text)
        self.assertNotIn('rowspan="1"', text)

    def test_urls_and_email_addresses_are_linked(self):
        text = render_html([ALICE]).content.decode("utf-8")
        self.assertIn(
            '<a href="https://example.com/~alice">https://example.com/~alice</a>', text
        )
        self.assertIn(
            '<a href="mailto:alice@example.com">alice@example.com</a>', text
        )

    def test_values_are_escaped(self):
        text = render_html([BOB]).content.decode("utf-8")
        self.assertIn("<td>Bob &lt;Smith&gt; &amp; Sons</td>", text)

    def test_binary_values(self):
        text = render_html([("cn=photo", {"jpegPhoto": [b"\xff\xd8\xff"]})]).content
        self.assertIn(b"<td>/9j/</td>", text)


class TestRenderLDIF(unittest.TestCase):
    def test_no_entries(self):
        rendered = render_ldif([])
        self.assertEqual(rendered.content, b"")
        self.assertEqual(rendered.media_type, LDIF_MEDIA_TYPE)

    def test_entries(self):
        text = render_ldif([ALICE, BOB]).content.decode("utf-8")
        self.assertTrue(text.startswith("version: 1\n\ndn: uid=alice"))
        self.assertIn("cn: Alice Johnson\n", text)
        self.assertIn("mail: alice@example.com\n", text)
        self.assertIn("\n\ndn: uid=bob,ou=people,dc=example,dc=com\n", text)

    def test_binary_values_are_base64(self):
        text = render_ldif([("cn=photo", {"jpegPhoto": [b"\xff\xd8\xff"]})]).content
        self.assertIn(b"jpegPhoto:: /9j/\n", text)


class TestRenderJSON(unittest.TestCase):
    def test_no_entries(self):
        rendered = render_json([])
        self.assertEqual(json.loads(rendered.content), {})
        self.assertEqual(rendered.media_type, JSON_MEDIA_TYPE)

    def test_entries(self):
        data = json.loads(render_json([ALICE, BOB]).content)
        self.assertEqual(
            data,
            {
                "uid=alice,ou=people,dc=example,dc=com": {
                    "cn": ["Alice Johnson"],
                    "labeledURI": [
                        "https://example.com/~alice",
                        "https://alice.example.org",
                    ],
                    "mail": ["alice@example.com"],
                },
                "uid=bob,ou=people,dc=example,dc=com": {
                    "cn": ["Bob <Smith> & Sons"],
                },
            },
        )

    def test_attribute_names_are_sorted(self):
        data = json.loads(render_json([ALICE]).content)
        attrs = data["uid=alice,ou=people,dc=example,dc=com"]
        self.assertEqual(list(attrs), ["cn", "labeledURI", "mail"])

    def test_entry_order_is_preserved(self):
        data = json.loads(render_json([BOB, ALICE]).content)
        self.assertEqual(
            list(data),
            [
                "uid=bob,ou=people,dc=example,dc=com",
                "uid=alice,ou=people,dc=example,dc=com",
            ],
        )

    def test_non_ascii_is_utf8(self):
        content = render_json([("cn=zoe", {"cn": ["Zoë".encode()]})]).content
        self.assertIn("Zoë".encode(), content)


class TestRender(unittest.TestCase):
    def test_every_format_has_a_renderer(self):
        self.assertEqual(set(RENDERERS), set(OutputFormat))

    def test_rendering_is_repeatable(self):
        for output_format in OutputFormat:
            with self.subTest(output_format=output_format):
                self.assertEqual(
                    render([ALICE, BOB], output_format),
                    render([ALICE, BOB], output_format),
                )


if __name__ == "__main__":
    unittest.main()
