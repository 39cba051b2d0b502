"""
Small text helpers shared by the built-in modules.
"""

import re

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """``"Hello, World!"`` -> ``"hello-world"``"""
    return _NON_SLUG.sub("-", (text or "").lower()).strip("-")
