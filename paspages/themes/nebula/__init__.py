"""
Nebula - a dark glassmorphism theme.

Mounting it registers its landing view, a configuration page under
``/admin/theme/nebula`` and makes it the active theme.
"""

import logging

from ...http import Request, Response, Router
from ...http.request import BadRequest
from ...manifest import ModuleKind, ModuleManifest
from ...registry import MenuItem
from ...view import read_view

logger = logging.getLogger("paspages.themes.nebula")

manifest = ModuleManifest(
    kind=ModuleKind.THEME,
    slug="nebula-theme",
    name="Nebula Future Theme",
    version="1.0.0",
    requires="1.0.0",
    description="A futuristic dark theme with glassmorphism UI.",
)


def mount(app) -> None:
    registry = app.registry
    registry.register_theme_view(manifest.slug, "landing", read_view(__name__, "landing.html"))
    registry.register_menu(MenuItem(
        title="Nebula Theme",
        path="/admin/theme/nebula",
        category="theme",
    ))

    settings_html = read_view(__name__, "settings.html")
    admin = Router()

    @admin.get("/")
    async def configure(request: Request) -> Response:
        return await app.render_admin(request, "Nebula Configuration", settings_html)

    @admin.post("/save")
    async def save(request: Request):
        body = await request.json()
        if not isinstance(body, dict):
            raise BadRequest("Expected a JSON object")
        # Accepted and echoed; theme options are not persisted yet
        return {"success": True, "message": "Theme settings saved!", "data": body}

    app.include("/admin/theme/nebula", admin)
    registry.set_active_theme(manifest.slug)
    logger.info(f"{manifest.name} loaded")
