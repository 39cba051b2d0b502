"""
Application - wires the registry, persistence, views and modules together.

``create_app()`` builds one fully loaded application::

    app = create_app(load_config())
    # app is an ASGI callable: uvicorn.run(app)
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Any, Iterable, List, Optional

import aiofiles

from . import CORE_VERSION
from .admin import build_admin_router, render_admin
from .config import CoreConfig
from .db import Database
from .homepage import HomepageRouter
from .http import ASGIAdapter, NOT_FOUND_TEXT, Request, Response, Router
from .i18n import I18n
from .loader import LoadReport, ModuleLoader, discover_modules
from .manifest import Module, ModuleKind
from .migrator import MigrationOutcome, Migrator
from .registry import Registry
from .security import Security
from .storage import StorageManager
from .validator import ManifestValidator
from .view import ViewEngine

logger = logging.getLogger("paspages.app")

CORE_SCHEMA_SLUG = "core-system"

CORE_SCHEMA = """
CREATE TABLE IF NOT EXISTS core_settings (
    key TEXT PRIMARY KEY,
    value TEXT,
    group_name TEXT DEFAULT 'general',
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
-- Default homepage is the theme's landing page
INSERT OR IGNORE INTO core_settings (key, value, group_name) VALUES
('site_name', 'PasPages Core', 'general'),
('homepage_type', 'default', 'reading'),
('homepage_target_id', '', 'reading');
"""

CORE_TRANSLATIONS = {
    "en": {
        "welcome": "Welcome to PasPages Core",
        "admin_title": "Admin Dashboard",
        "status_operational": "OPERATIONAL",
        "modules_active": "Active Modules",
        "db_connected": "Database Connected",
        "settings_saved": "Settings Saved",
        "migration_run": "Run Migration",
        "system_health": "System Health",
        "quick_actions": "Quick Actions",
    },
}


class PasPages:
    """
    The application object handed to every module's ``mount``.

    Exposes ``registry``, ``db``, ``views`` and ``config`` plus the route
    decorators ``get``/``post``/``route`` and ``include``. It is also the
    ASGI callable served by uvicorn.
    """

    def __init__(
        self,
        config: Optional[CoreConfig] = None,
        *,
        registry: Optional[Registry] = None,
        db: Optional[Database] = None,
    ):
        self.config = config or CoreConfig()
        self.registry = registry or Registry(default_theme=self.config.default_theme)
        self.db = db or Database(self.config.database_url)
        self.views = ViewEngine(self.registry)
        self.router = Router()
        self.validator = ManifestValidator(CORE_VERSION)
        self.loader = ModuleLoader(self.registry, self.validator)
        self.homepage = HomepageRouter(self.registry, self.views, self.config)
        self.storage = StorageManager(self.db, self.config)
        self.security = Security.from_config(self.config)
        self.modules: List[Module] = []
        self.load_report = LoadReport()
        self._asgi = ASGIAdapter(self)

    # ========================================================================
    # Routing surface for modules
    # ========================================================================

    def route(self, path: str, methods=("GET",)):
        return self.router.route(path, tuple(methods))

    def get(self, path: str):
        return self.router.get(path)

    def post(self, path: str):
        return self.router.post(path)

    def include(self, prefix: str, router: Router) -> None:
        self.router.include(prefix, router)

    # ========================================================================
    # Helpers for handlers
    # ========================================================================

    def i18n(self, request: Request) -> I18n:
        locale = request.state.get("locale") or self.config.default_locale
        return I18n(self.registry, locale, self.config.default_locale)

    async def render_admin(self, request: Request, title: str, content: str) -> Response:
        """Wrap ``content`` in the admin dashboard shell."""
        return await render_admin(self, request, title, content)

    async def migrate(self) -> List[MigrationOutcome]:
        """Apply every registered schema not yet in the ledger."""
        return await Migrator(self.db).sweep(self.registry.get_schemas())

    def mounted_themes(self) -> List[str]:
        mounted = set(self.load_report.mounted)
        return [
            m.slug for m in self.modules
            if m.kind == ModuleKind.THEME and m.slug in mounted
        ]

    # ========================================================================
    # Boot
    # ========================================================================

    def register_core(self) -> None:
        """Core translations and the settings schema."""
        with self.registry.owner("core"):
            for locale, table in CORE_TRANSLATIONS.items():
                self.registry.register_translation(locale, table)
            self.registry.register_schema(CORE_SCHEMA_SLUG, CORE_VERSION, CORE_SCHEMA)

    def load_modules(self, modules: Iterable[Any]) -> LoadReport:
        self.modules = [
            m if isinstance(m, Module) else Module.from_object(m) for m in modules
        ]
        self.load_report = self.loader.load(self.modules, self)
        logger.info(
            f"Modules loaded: {len(self.load_report.mounted)} mounted, "
            f"{len(self.load_report.rejected)} rejected, "
            f"{len(self.load_report.failed)} failed"
        )
        return self.load_report

    def install_core_routes(self) -> None:
        self.router.add_route("GET", "/assets/{path:path}", self._serve_asset)
        self.include("/admin", build_admin_router(self))
        self.router.add_route("GET", "/", self._serve_homepage)

    async def _serve_homepage(self, request: Request) -> Response:
        return await self.homepage.handle(self.db)

    async def _serve_asset(self, request: Request) -> Response:
        if not self.config.assets_dir:
            return Response.text(NOT_FOUND_TEXT, status=404)
        root = Path(self.config.assets_dir).resolve()
        target = (root / request.path_params["path"]).resolve()
        if root not in target.parents or not target.is_file():
            return Response.text(NOT_FOUND_TEXT, status=404)
        media_type = mimetypes.guess_type(target.name)[0] or "application/octet-stream"
        async with aiofiles.open(target, "rb") as f:
            content = await f.read()
        return Response(content, media_type=media_type)

    # ========================================================================
    # ASGI
    # ========================================================================

    async def startup(self) -> None:
        await self.db.connect()
        logger.info(f"PasPages Core v{CORE_VERSION} started (theme: {self.registry.active_theme})")

    async def shutdown(self) -> None:
        await self.db.disconnect()

    async def __call__(self, scope: dict, receive, send) -> None:
        await self._asgi(scope, receive, send)


def create_app(
    config: Optional[CoreConfig] = None,
    modules: Optional[Iterable[Any]] = None,
    *,
    registry: Optional[Registry] = None,
    db: Optional[Database] = None,
) -> PasPages:
    """
    Build a loaded application.

    Args:
        config: Runtime configuration (defaults when omitted)
        modules: Modules to load; discovered from the built-in packages and
            the ``paspages.modules`` entry points when omitted
        registry: Pre-built registry (a fresh one per app by default)
        db: Pre-built database facade

    Raises:
        DiscoveryFault: When a discovered module fails to import
    """
    app = PasPages(config, registry=registry, db=db)
    app.register_core()
    app.load_modules(discover_modules() if modules is None else modules)
    app.install_core_routes()
    return app
