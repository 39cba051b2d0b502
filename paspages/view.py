"""
View resolution and placeholder substitution.

Templates are plain markup with literal, case-sensitive ``{{key}}``
placeholders. Resolution goes through the Registry, so the active theme's
scoped view wins over the bare alias.
"""

from datetime import datetime
from importlib import resources
import logging
from typing import Any, Mapping, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from .http.response import Response
from .registry import Registry

logger = logging.getLogger("paspages.view")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "\n".join(_stringify(v) for v in value)
    return str(value)


def read_view(package: str, name: str, directory: str = "views") -> str:
    """Raw text of a view file shipped inside ``package``."""
    return resources.files(package).joinpath(directory).joinpath(name).read_text(encoding="utf-8")


def template_environment(package: str, directory: str = "views") -> Environment:
    """Async Jinja2 environment over a package's template directory."""
    return Environment(
        loader=PackageLoader(package, directory),
        autoescape=select_autoescape(enabled_extensions=["html"]),
        enable_async=True,
    )


def substitute(template: str, data: Mapping[str, Any]) -> str:
    """
    Replace every ``{{key}}`` occurrence for each key in ``data``.

    Placeholders without a matching key are left untouched.
    """
    for key, value in data.items():
        template = template.replace("{{" + key + "}}", _stringify(value))
    return template


class ViewEngine:
    """Renders registered views into HTML responses."""

    def __init__(self, registry: Registry):
        self.registry = registry

    def render_string(self, view: str, data: Optional[Mapping[str, Any]] = None) -> Optional[str]:
        """Resolve and substitute ``view``; ``None`` when it is not registered."""
        template = self.registry.get_view(view)
        if template is None:
            return None
        final = dict(data or {})
        final["theme_name"] = self.registry.active_theme
        final["year"] = datetime.now().year
        return substitute(template, final)

    def render(self, view: str, data: Optional[Mapping[str, Any]] = None, status: int = 200) -> Response:
        html = self.render_string(view, data)
        if html is None:
            theme = self.registry.active_theme
            logger.error(f"View '{view}' not found in theme '{theme}'")
            return Response.html(
                f"<h1>Error: View '{view}' not found in '{theme}'</h1>",
                status=500,
            )
        return Response.html(html, status=status)
