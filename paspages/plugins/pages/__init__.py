"""
Pages Manager - static pages and custom landing pages.

Provides the ``static_pages`` table read by the homepage router, the
``public_page`` view, a public page viewer and the admin editor.
"""

import logging

from ...http import NOT_FOUND_TEXT, Request, Response
from ...http.request import BadRequest
from ...manifest import ModuleKind, ModuleManifest
from ...registry import MenuItem
from ...utils import slugify
from ...view import read_view, template_environment

logger = logging.getLogger("paspages.plugins.pages")

manifest = ModuleManifest(
    kind=ModuleKind.PLUGIN,
    slug="pages-manager",
    name="Pages Manager",
    version="1.0.2",
    requires="1.0.0",
    description="Manage static pages and custom landing pages.",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS static_pages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    content TEXT,
    status TEXT DEFAULT 'published',
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

EMPTY_PAGE = {"title": "", "slug": "", "content": "", "status": "published"}

_env = template_environment(__name__)


def mount(app) -> None:
    registry = app.registry
    registry.log("Mounting Pages Manager...")
    registry.register_schema(manifest.slug, manifest.version, SCHEMA)
    registry.register_menu(MenuItem(title="All Pages", path="/admin/pages", icon="file"))
    registry.register_view("public_page", read_view(__name__, "public_view.html"))

    # ── Public ──────────────────────────────────────────────────────────

    @app.get("/p/{slug}")
    async def public_page(request: Request) -> Response:
        page = await app.db.find_one(
            "SELECT * FROM static_pages WHERE slug = ? AND status = 'published'",
            [request.path_params["slug"]],
        )
        if page is None:
            return Response.text(NOT_FOUND_TEXT, status=404)
        return app.views.render("public_page", {
            "title": page["title"],
            "content": page["content"],
            "slug": page["slug"],
        })

    @app.get("/api/pages/list")
    async def list_published(request: Request):
        return await app.db.find_all(
            "SELECT id, title FROM static_pages WHERE status = 'published' ORDER BY title ASC"
        )

    # ── Admin ───────────────────────────────────────────────────────────

    @app.get("/admin/pages")
    async def admin_list(request: Request) -> Response:
        pages = await app.db.find_all("SELECT * FROM static_pages ORDER BY created_at DESC")
        content = await _env.get_template("admin_list.html").render_async(pages=pages)
        return await app.render_admin(request, "Pages Manager", content)

    @app.get("/admin/pages/editor")
    async def admin_editor(request: Request) -> Response:
        page = dict(EMPTY_PAGE)
        page_id = request.query_param("id")
        if page_id:
            found = await app.db.find_one("SELECT * FROM static_pages WHERE id = ?", [page_id])
            if found:
                page = found
        content = await _env.get_template("admin_editor.html").render_async(page=page)
        return await app.render_admin(request, "Page Editor", content)

    @app.post("/admin/pages/save")
    async def admin_save(request: Request):
        body = await request.json()
        if not isinstance(body, dict) or not body.get("title"):
            raise BadRequest("A page needs a title")

        title = body["title"]
        slug = body.get("slug") or slugify(title)
        values = [title, slug, body.get("content", ""), body.get("status") or "published"]
        if body.get("id"):
            await app.db.run(
                "UPDATE static_pages SET title = ?, slug = ?, content = ?, status = ? WHERE id = ?",
                values + [body["id"]],
            )
            page_id = body["id"]
        else:
            result = await app.db.run(
                "INSERT INTO static_pages (title, slug, content, status) VALUES (?, ?, ?, ?)",
                values,
            )
            page_id = result.last_row_id
        logger.info(f"Page saved: {slug}")
        return {"success": True, "id": page_id, "slug": slug}

    @app.post("/admin/pages/delete")
    async def admin_delete(request: Request):
        body = await request.json()
        page_id = body.get("id") if isinstance(body, dict) else None
        if not page_id:
            raise BadRequest("Missing page id")
        await app.db.run("DELETE FROM static_pages WHERE id = ?", [page_id])
        return {"success": True}

    registry.log("Pages Manager Mounted [OK]")
