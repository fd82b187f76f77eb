"""Small string helpers for generated HTML and XML.

The feeds write XML by hand, so they share the escaping here with the
fallback code-block renderer. Pages built with a ``base_url`` get their
root-relative links rewritten to absolute ones.
"""

from __future__ import annotations

import re

_ESCAPES = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;"})

# href="/x", src='/x' and action="/x"; protocol-relative "//host" is excluded.
_ROOT_RELATIVE_ATTR = re.compile(
    r"""\b(?P<attr>href|src|action)=(?P<quote>["'])(?P<path>/(?!/)[^"']*)(?P=quote)"""
)


def escape_html(text: str) -> str:
    """Escape ``& < > "`` so text is safe inside element content or attributes.

    >>> escape_html('Tom & "Jerry"')
    'Tom &amp; &quot;Jerry&quot;'
    """
    return text.translate(_ESCAPES)


def join_root_url(root_url: str, path: str) -> str:
    """Join ``root_url`` and ``path`` with exactly one slash between them.

    An empty ``root_url`` returns ``path`` as is, which keeps links
    root-relative for sites without a ``base_url``.
    """
    if not root_url:
        return path
    return root_url.rstrip("/") + "/" + path.lstrip("/")


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Prefix root-relative ``href``/``src``/``action`` values with ``root_url``.

    Absolute, protocol-relative, fragment and scheme links (``mailto:``,
    ``javascript:``) do not start with a single slash and are untouched.
    """
    if not root_url:
        return html
    return _ROOT_RELATIVE_ATTR.sub(
        lambda m: f"{m['attr']}={m['quote']}{join_root_url(root_url, m['path'])}{m['quote']}",
        html,
    )
