"""
Admin routes - setup, dashboard, settings and system maintenance.

Pages are rendered with Jinja2 from the package's ``templates`` directory.
Modules reuse the dashboard shell through ``render_admin`` so that their
pages keep the sidebar.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING, Dict, List

from markupsafe import Markup

from ..faults import QueryFault
from ..http import Request, Response, Router
from ..http.request import BadRequest
from ..migrator import MigrationStatus
from ..storage import SECRET_KEYS, seal_setting
from ..view import template_environment

if TYPE_CHECKING:
    from ..app import PasPages

logger = logging.getLogger("paspages.admin")

# Keys an operator may write, per settings group
SETTING_GROUPS: Dict[str, tuple] = {
    "storage": (
        "storage_driver",
        "cloudinary_cloud_name",
        "cloudinary_upload_preset",
        "gdrive_access_token",
        "gdrive_folder_id",
    ),
    "reading": ("homepage_type", "homepage_target_id"),
    "general": ("site_name", "admin_email"),
}

HOMEPAGE_TYPES = ("default", "blog", "page")
STORAGE_DRIVERS = ("local", "cloudinary", "googledrive")

SETUP_SEED = """
INSERT OR IGNORE INTO core_settings (key, value, group_name) VALUES
('site_name', 'PasPages Core', 'general'),
('admin_email', 'admin@example.com', 'general'),
('storage_driver', 'local', 'storage');
"""

UPSERT_SETTING = (
    "INSERT INTO core_settings (key, value, group_name) VALUES (?, ?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
    "group_name = excluded.group_name, updated_at = CURRENT_TIMESTAMP"
)

_env = template_environment("paspages.admin", "templates")


async def render_template(name: str, **context) -> str:
    return await _env.get_template(name).render_async(**context)


async def render_admin(app: "PasPages", request: Request, title: str, content: str) -> Response:
    """Wrap ``content`` (trusted markup) in the dashboard shell."""
    i18n = app.i18n(request)
    menus = {
        category: [
            {"title": i18n.t(item.title), "path": item.path}
            for item in app.registry.get_menus(category)
        ]
        for category in ("plugin", "theme")
    }
    html = await render_template(
        "dashboard.html",
        title=title,
        content=Markup(content),
        sidebar_plugins=menus["plugin"],
        sidebar_themes=menus["theme"],
        plugin_count=app.registry.plugin_count,
        active_theme=app.registry.active_theme,
        locale=i18n.locale,
    )
    return Response.html(html)


def build_admin_router(app: "PasPages") -> Router:
    """Admin routes bound to ``app``; mounted under ``/admin``."""
    router = Router()

    # =========================================================================
    # Setup (emergency access)
    # =========================================================================

    @router.get("/setup")
    async def setup_form(request: Request) -> Response:
        return Response.html(await render_template("setup.html", unlocked=False))

    @router.post("/setup")
    async def setup(request: Request) -> Response:
        form = await request.form()
        supplied = form.get("master_key", "")
        expected = app.config.master_key or ""
        if not expected or not supplied or not hmac.compare_digest(
            supplied.encode("utf-8"), expected.encode("utf-8")
        ):
            logger.warning("Setup refused: invalid master key")
            return Response.text("ACCESS DENIED: Invalid Master Key.", status=401)

        try:
            schema = app.registry.get_schema("core-system")
            if schema is not None:
                result = await app.db.execute(schema.sql)
                if not result.success:
                    raise RuntimeError(result.error)

            admin_row = await app.db.find_one(
                "SELECT * FROM core_settings WHERE key = 'admin_email'"
            )
            if admin_row is None:
                result = await app.db.execute(SETUP_SEED)
                if not result.success:
                    raise RuntimeError(result.error)
        except Exception as exc:
            logger.error(f"Setup failed: {exc}", exc_info=True)
            return Response.text(f"CRITICAL ERROR: {getattr(exc, 'message', exc)}", status=500)

        app.registry.log("System unlocked: core schema injected.")
        return Response.html(await render_template("setup.html", unlocked=True))

    # =========================================================================
    # Dashboard
    # =========================================================================

    @router.get("/")
    async def dashboard(request: Request) -> Response:
        i18n = app.i18n(request)
        content = await render_template(
            "index.html",
            t=i18n.t,
            plugin_count=app.registry.plugin_count,
            active_theme=app.registry.active_theme,
            themes=app.mounted_themes(),
            system_logs=app.registry.logs[-20:],
        )
        return await render_admin(app, request, i18n.t("admin_title"), content)

    # =========================================================================
    # Settings
    # =========================================================================

    @router.get("/settings")
    async def settings_page(request: Request) -> Response:
        values: Dict[str, str] = {}
        try:
            rows = await app.db.find_all(
                "SELECT key, value FROM core_settings WHERE group_name IN ('storage', 'reading')"
            )
            values = {row["key"]: row["value"] or "" for row in rows}
        except QueryFault:
            logger.warning("Settings table not found. Run migration.")

        content = await render_template(
            "settings.html",
            current_driver=values.get("storage_driver") or "local",
            drivers=STORAGE_DRIVERS,
            cloudinary_cloud_name=values.get("cloudinary_cloud_name", ""),
            cloudinary_upload_preset=values.get("cloudinary_upload_preset", ""),
            # Secrets are never echoed back
            gdrive_token_stored=bool(values.get("gdrive_access_token")),
            gdrive_folder_id=values.get("gdrive_folder_id", ""),
            homepage_type=values.get("homepage_type") or "default",
            homepage_types=HOMEPAGE_TYPES,
            homepage_target_id=values.get("homepage_target_id", ""),
        )
        return await render_admin(app, request, "System Settings", content)

    @router.post("/settings/{group}")
    async def save_settings(request: Request) -> Response:
        group = request.path_params["group"]
        allowed = SETTING_GROUPS.get(group)
        if allowed is None:
            return Response.json(
                {"success": False, "error": f"Unknown settings group '{group}'"},
                status=404,
            )

        body = await request.json()
        if not isinstance(body, dict):
            raise BadRequest("Settings payload must be a JSON object")
        if "homepage_type" in body and body["homepage_type"] not in HOMEPAGE_TYPES:
            raise BadRequest(f"homepage_type must be one of {', '.join(HOMEPAGE_TYPES)}")
        if "storage_driver" in body and body["storage_driver"] not in STORAGE_DRIVERS:
            raise BadRequest(f"storage_driver must be one of {', '.join(STORAGE_DRIVERS)}")

        updated: List[str] = []
        try:
            for key in allowed:
                if key not in body or body[key] is None:
                    continue
                value = str(body[key])
                if key in SECRET_KEYS:
                    value = seal_setting(app.security, key, value)
                await app.db.run(UPSERT_SETTING, [key, value, group])
                updated.append(key)
        except QueryFault as fault:
            logger.error(f"Saving {group} settings failed: {fault}")
            return Response.json(
                {"success": False, "error": "Settings table missing. Run migration first."},
                status=500,
            )

        app.registry.log(f"Settings saved: {group} ({', '.join(updated) or 'no changes'})")
        return Response.json({"success": True, "updated": updated})

    # =========================================================================
    # System
    # =========================================================================

    @router.post("/system/migrate")
    async def migrate(request: Request) -> Response:
        logs = ["[SYSTEM] Migration Engine Ready."]
        schemas = app.registry.get_schemas()
        if not schemas:
            logs.append("[INFO] No pending schemas found.")
        outcomes = await app.migrate()
        logs.extend(str(outcome) for outcome in outcomes)
        return Response.json({
            "success": all(o.status is not MigrationStatus.ERROR for o in outcomes),
            "logs": logs,
            "results": [
                {
                    "slug": o.slug,
                    "version": o.version,
                    "status": o.status.value,
                    "message": o.message,
                    "duration_ms": o.duration_ms,
                }
                for o in outcomes
            ],
        })

    @router.get("/system/modules")
    async def modules(request: Request) -> Response:
        return Response.json({
            "report": app.load_report.to_dict(),
            "registry": app.registry.snapshot(),
        })

    @router.post("/themes/activate")
    async def activate_theme(request: Request) -> Response:
        body = await request.json()
        slug = body.get("slug") if isinstance(body, dict) else None
        if slug not in app.mounted_themes():
            return Response.json(
                {"success": False, "error": f"Theme '{slug}' is not mounted"},
                status=404,
            )
        app.registry.set_active_theme(slug)
        return Response.json({"success": True, "active_theme": slug})

    return router
