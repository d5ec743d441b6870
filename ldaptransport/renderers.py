"""
Turn a directory search result set into a response body.

There is one renderer per :py:class:`~ldaptransport.negotiation.OutputFormat`.
Each renderer takes the full result set and returns the whole body at once,
along with its media type, so that ``Content-Length`` can be computed before
anything is sent.
"""

import io
import json
import re
from base64 import b64encode as encode
from collections import namedtuple
from collections.abc import Callable

import ldif
from django.utils.html import escape, format_html

from .negotiation import OutputFormat
from .typing import JSONEntries, SearchResults

LDIF_MEDIA_TYPE = "text/ldif"
JSON_MEDIA_TYPE = "text/json; charset=utf-8"
HTML_MEDIA_TYPE = "text/html"

#: Values that we turn into links to themselves
URL_VALUE_RE = re.compile(r"^https?:")
#: Values that we turn into ``mailto:`` links
EMAIL_VALUE_RE = re.compile(r"^[-\w]+@[-.\w]+$")

ENTRY_SEPARATOR = '<tr><th colspan="2"><hr>&nbsp;</th></tr>\n'

Rendered = namedtuple("Rendered", ["content", "media_type"])


def value_as_text(value: bytes | str) -> str:
    """
    Decode an attribute value for the text based renderers.

    Values that are not valid UTF-8 (``jpegPhoto``, ``objectGUID``, ...) are
    returned base64-encoded, the same way LDIF would write them.

    Args:
        value: the raw attribute value

    Returns:
        The value as text.

    """
    if isinstance(value, str):
        return value
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return encode(value).decode("ascii")


def render_ldif(results: SearchResults) -> Rendered:
    """
    Write the entries as an LDIF (RFC 2849) document.

    An empty result set gives an empty document; otherwise the document
    starts with a ``version: 1`` line.
    """
    output = io.StringIO()
    if results:
        output.write("version: 1\n\n")
        writer = ldif.LDIFWriter(output)
        for dn, attrs in results:
            writer.unparse(dn, attrs)
    return Rendered(output.getvalue().encode("utf-8"), LDIF_MEDIA_TYPE)


def render_json(results: SearchResults) -> Rendered:
    """
    Write the entries as a JSON object of the form
    ``{dn: {attribute: [value, ...]}}``.

    Attribute names are sorted so that the same result set always renders to
    the same bytes.
    """
    objects: JSONEntries = {}
    for dn, attrs in results:
        objects[dn] = {
            name: [value_as_text(value) for value in attrs[name]]
            for name in sorted(attrs)
        }
    content = json.dumps(objects, indent=2, ensure_ascii=False)
    return Rendered(content.encode("utf-8"), JSON_MEDIA_TYPE)


def html_value(value: str) -> str:
    """
    Escape one attribute value for HTML, linking it if it looks like a URL or
    an email address.
    """
    if URL_VALUE_RE.match(value):
        return format_html('<a href="{0}">{0}</a>', value)
    if EMAIL_VALUE_RE.match(value):
        return format_html('<a href="mailto:{0}">{0}</a>', value)
    return escape(value)


def render_html(results: SearchResults) -> Rendered:
    """
    Write the entries as an HTML table.

    Each entry starts with a header row holding its DN.  Each attribute gets a
    label cell spanning one row per value.  The document ends with a line
    saying how many entries were found.
    """
    parts = ["<head><title>Directory Search Results</title></head>\n<body>"]
    for index, (dn, attrs) in enumerate(results):
        if index:
            parts.append(ENTRY_SEPARATOR)
        else:
            parts.append("<table>")
        parts.append(format_html('<tr><th colspan="2">{}</th></tr>\n', dn))
        for name, values in attrs.items():
            rowspan = f' rowspan="{len(values)}"' if len(values) > 1 else ""
            parts.append(
                f'<tr><td align="right" valign="top"{rowspan}>'
                f"{escape(name)}&nbsp;</td>\n"
            )
            for position, value in enumerate(values):
                if position:
                    parts.append("<tr>")
                parts.append(f"<td>{html_value(value_as_text(value))}</td></tr>\n")
    count = len(results)
    if count:
        parts.append("</table>")
    parts.append("<hr>")
    if count:
        parts.append(f"{count} Match{'es' if count > 1 else ''} found")
    else:
        parts.append("No Matches found")
    return Rendered("".join(parts).encode("utf-8"), HTML_MEDIA_TYPE)


#: The renderer for each output format.  Every member of OutputFormat must
#: have an entry here.
RENDERERS: dict[OutputFormat, Callable[[SearchResults], Rendered]] = {
    OutputFormat.HTML: render_html,
    OutputFormat.LDIF: render_ldif,
    OutputFormat.JSON: render_json,
}


def render(results: SearchResults, output_format: OutputFormat) -> Rendered:
    """
    Render ``results`` in ``output_format``.

    Args:
        results: the search results, in the order the server returned them
        output_format: the representation to produce

    Returns:
        The body and its media type.

    """
    return RENDERERS[output_format](results)
