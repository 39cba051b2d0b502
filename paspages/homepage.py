"""
Homepage routing - decides what ``/`` shows.

The decision cascades over the homepage settings, the pages table and the
registered views, and always ends in a rendered response: any failure while
reading settings or pages falls through to the theme's landing page.
"""

import logging
from typing import Optional

from . import CORE_VERSION
from .config import CoreConfig
from .db import Database
from .http.response import Response
from .registry import Registry
from .view import ViewEngine, substitute

logger = logging.getLogger("paspages.homepage")

LANDING_STATUS = "System Ready - Please configure Homepage in Admin"

FALLBACK_PAGE_HTML = (
    "<!DOCTYPE html><html><head><meta charset=\"UTF-8\"><title>{{title}}</title></head>"
    "<body><h1>{{title}}</h1><div>{{content}}</div></body></html>"
)


class HomepageRouter:
    """Resolves the site root to a redirect, a static page or the landing page."""

    def __init__(self, registry: Registry, views: ViewEngine, config: Optional[CoreConfig] = None):
        self.registry = registry
        self.views = views
        self.config = config or CoreConfig()

    async def handle(self, db: Database) -> Response:
        try:
            home_type, target_id = await self._read_settings(db)
        except Exception as exc:
            # Fresh install: core_settings does not exist yet
            logger.debug(f"Homepage settings unavailable: {exc}")
            return self.render_landing()

        if home_type == "blog":
            return Response.redirect(self.config.blog_index_path, status=302)

        if home_type == "page" and target_id:
            response = await self._render_page(db, target_id)
            if response is not None:
                return response

        return self.render_landing()

    async def _read_settings(self, db: Database):
        type_row = await db.find_one(
            "SELECT value FROM core_settings WHERE key = 'homepage_type'"
        )
        target_row = await db.find_one(
            "SELECT value FROM core_settings WHERE key = 'homepage_target_id'"
        )
        home_type = (type_row or {}).get("value") or "default"
        target_id = (target_row or {}).get("value") or ""
        return home_type, target_id

    async def _render_page(self, db: Database, target_id: str) -> Optional[Response]:
        try:
            page = await db.find_one("SELECT * FROM static_pages WHERE id = ?", [target_id])
        except Exception as exc:
            logger.error(f"Page plugin not installed or table missing: {exc}")
            self.registry.log("Error: Page plugin missing or table not found.", level=logging.ERROR)
            return None
        if page is None:
            return None

        template = self.registry.get_view("public_page") or FALLBACK_PAGE_HTML
        return Response.html(substitute(template, {
            "title": page.get("title"),
            "content": page.get("content"),
            "slug": page.get("slug"),
        }))

    def render_landing(self) -> Response:
        """The safety net: needs no database access."""
        self.registry.log("System Status: Rendering Default Landing Page.")
        return self.views.render("landing", {
            "status": LANDING_STATUS,
            "plugin_count": self.registry.plugin_count,
            "core_version": CORE_VERSION,
            "system_logs": self.registry.logs,
        })
