"""
Blog Manager - posts, categories, tags, header menus and sidebar widgets.

Public pages are thin shells rendered through the view resolver, so the
active theme may supply its own ``blog_index`` and ``blog_post`` views; the
shells fetch their data from the ``/api/blog`` endpoints.
"""

from datetime import datetime, timezone
from email.utils import format_datetime
import logging
from pathlib import PurePosixPath
from typing import List

from ...faults import StorageFault
from ...http import Request, Response
from ...http.request import BadRequest
from ...manifest import ModuleKind, ModuleManifest
from ...registry import MenuItem
from ...storage import UploadedFile
from ...utils import slugify
from ...view import read_view, template_environment

logger = logging.getLogger("paspages.plugins.blog")

manifest = ModuleManifest(
    kind=ModuleKind.PLUGIN,
    slug="blog-manager",
    name="PasPages Blog Pro",
    version="1.7.2",
    requires="1.0.0",
    description="Advanced Blogging System with Categories, Tags, and Widgets.",
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS blog_posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT UNIQUE NOT NULL,
    title TEXT NOT NULL,
    content TEXT,
    excerpt TEXT,
    thumbnail_url TEXT,
    author_name TEXT DEFAULT 'Admin',
    category_id INTEGER,
    views INTEGER DEFAULT 0,
    status TEXT DEFAULT 'published',
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS blog_categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    slug TEXT UNIQUE NOT NULL,
    description TEXT
);
CREATE TABLE IF NOT EXISTS blog_tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    slug TEXT UNIQUE NOT NULL
);
CREATE TABLE IF NOT EXISTS blog_post_tags (
    post_id INTEGER,
    tag_id INTEGER,
    PRIMARY KEY (post_id, tag_id)
);
CREATE TABLE IF NOT EXISTS blog_widgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    type TEXT NOT NULL,
    content TEXT,
    sort_order INTEGER DEFAULT 0,
    is_active INTEGER DEFAULT 1
);
CREATE TABLE IF NOT EXISTS blog_menus (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    parent_id INTEGER DEFAULT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL,
    sort_order INTEGER DEFAULT 0,
    target TEXT DEFAULT '_self'
);
"""

POST_WITH_CATEGORY = (
    "SELECT p.*, c.name AS category_name, c.slug AS category_slug "
    "FROM blog_posts p LEFT JOIN blog_categories c ON p.category_id = c.id"
)

EMPTY_POST = {
    "title": "", "slug": "", "content": "", "excerpt": "", "thumbnail_url": "",
    "category_id": None, "tags": "", "status": "published",
}

FEED_SIZE = 20

_env = template_environment(__name__)


async def _render(name: str, **context) -> str:
    return await _env.get_template(name).render_async(**context)


def _json_object(body) -> dict:
    if not isinstance(body, dict):
        raise BadRequest("Expected a JSON object")
    return body


def _rfc822(timestamp) -> str:
    try:
        moment = datetime.fromisoformat(str(timestamp)).replace(tzinfo=timezone.utc)
    except ValueError:
        moment = datetime.now(timezone.utc)
    return format_datetime(moment, usegmt=True)


def build_feed(base_url: str, posts: List[dict]) -> str:
    """RSS 2.0 document for the given posts."""
    items = "".join(
        f"<item><title><![CDATA[{post['title']}]]></title>"
        f"<link>{base_url}/post/{post['slug']}</link>"
        f"<pubDate>{_rfc822(post.get('created_at'))}</pubDate></item>"
        for post in posts
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" ?>'
        '<rss version="2.0"><channel><title>PasPages Blog</title>'
        f"<link>{base_url}/blog</link>{items}</channel></rss>"
    )


def mount(app) -> None:
    registry = app.registry
    db = app.db
    registry.log("Initializing Blog Manager...")
    registry.register_schema(manifest.slug, manifest.version, SCHEMA)

    for title, path, icon in (
        ("All Posts", "/admin/blog", "file-text"),
        ("Categories", "/admin/blog/categories", "folder"),
        ("Tags", "/admin/blog/tags", "tag"),
        ("Menu Manager", "/admin/blog/menus", "menu"),
        ("Widget Manager", "/admin/blog/widgets", "layout"),
    ):
        registry.register_menu(MenuItem(title=title, path=path, icon=icon))
    registry.log("Blog Admin Menus Registered")

    # Bare fallbacks; a theme's scoped views win over them
    registry.register_view("blog_index", read_view(__name__, "public_index.html"))
    registry.register_view("blog_post", read_view(__name__, "public_post.html"))

    # =========================================================================
    # Public pages
    # =========================================================================

    # Filtering happens client-side against /api/blog
    @app.get("/blog")
    @app.get("/blog/category/{slug}")
    @app.get("/blog/tag/{slug}")
    async def blog_index(request: Request) -> Response:
        return app.views.render("blog_index")

    @app.get("/post/{slug}")
    async def blog_post(request: Request) -> Response:
        return app.views.render("blog_post", {"slug": request.path_params["slug"]})

    @app.get("/blog/feed")
    async def feed(request: Request) -> Response:
        posts = await db.find_all(
            f"{POST_WITH_CATEGORY} WHERE p.status = 'published' "
            f"ORDER BY p.created_at DESC LIMIT {FEED_SIZE}"
        )
        return Response(
            build_feed(request.base_url, posts),
            media_type="application/xml; charset=utf-8",
        )

    # =========================================================================
    # Public API
    # =========================================================================

    @app.get("/api/blog")
    async def api_posts(request: Request):
        sql = f"{POST_WITH_CATEGORY} WHERE p.status = 'published'"
        params = []
        category = request.query_param("category")
        if category:
            sql += " AND c.slug = ?"
            params.append(category)
        tag = request.query_param("tag")
        if tag:
            sql += (
                " AND p.id IN (SELECT pt.post_id FROM blog_post_tags pt "
                "JOIN blog_tags t ON t.id = pt.tag_id WHERE t.slug = ?)"
            )
            params.append(tag)
        search = request.query_param("search")
        if search:
            sql += " AND (p.title LIKE ? OR p.content LIKE ?)"
            params.extend([f"%{search}%", f"%{search}%"])
        sql += " ORDER BY p.created_at DESC"
        return await db.find_all(sql, params)

    @app.get("/api/blog/post/{slug}")
    async def api_post(request: Request):
        post = await db.find_one(
            f"{POST_WITH_CATEGORY} WHERE p.slug = ? AND p.status = 'published'",
            [request.path_params["slug"]],
        )
        if post is None:
            return Response.json({"error": "Not Found"}, status=404)
        post["tags_list"] = await db.find_all(
            "SELECT t.name, t.slug FROM blog_tags t "
            "JOIN blog_post_tags pt ON t.id = pt.tag_id WHERE pt.post_id = ?",
            [post["id"]],
        )
        await db.run("UPDATE blog_posts SET views = views + 1 WHERE id = ?", [post["id"]])
        return post

    @app.get("/api/blog/menus")
    async def api_menus(request: Request):
        return await db.find_all("SELECT * FROM blog_menus ORDER BY sort_order ASC")

    @app.get("/api/blog/widgets")
    async def api_widgets(request: Request):
        return await db.find_all(
            "SELECT * FROM blog_widgets WHERE is_active = 1 ORDER BY sort_order ASC"
        )

    @app.get("/api/blog/sidebar")
    async def api_sidebar(request: Request):
        categories = await db.find_all(
            "SELECT c.*, (SELECT COUNT(*) FROM blog_posts "
            "WHERE category_id = c.id AND status = 'published') AS count "
            "FROM blog_categories c"
        )
        return {"categories": categories}

    # =========================================================================
    # Admin: posts
    # =========================================================================

    @app.get("/admin/blog")
    async def admin_posts(request: Request) -> Response:
        posts = await db.find_all(f"{POST_WITH_CATEGORY} ORDER BY p.created_at DESC")
        return await app.render_admin(
            request, "Blog Manager", await _render("admin_list.html", posts=posts)
        )

    @app.get("/admin/blog/editor")
    async def admin_editor(request: Request) -> Response:
        post = dict(EMPTY_POST)
        post_id = request.query_param("id")
        if post_id:
            found = await db.find_one("SELECT * FROM blog_posts WHERE id = ?", [post_id])
            if found:
                tags = await db.find_all(
                    "SELECT t.name FROM blog_tags t "
                    "JOIN blog_post_tags pt ON t.id = pt.tag_id WHERE pt.post_id = ?",
                    [post_id],
                )
                post = dict(found, tags=", ".join(t["name"] for t in tags))
        categories = await db.find_all("SELECT id, name FROM blog_categories ORDER BY name ASC")
        content = await _render("admin_editor.html", post=post, categories=categories)
        return await app.render_admin(request, "Edit Post" if post_id else "New Post", content)

    @app.post("/admin/blog/save")
    async def admin_save(request: Request):
        body = _json_object(await request.json())
        if not body.get("title"):
            raise BadRequest("A post needs a title")

        slug = body.get("slug") or slugify(body["title"])
        values = [
            body["title"], slug, body.get("content"), body.get("excerpt"),
            body.get("thumbnail_url"), body.get("category_id") or None,
            body.get("status") or "published",
        ]
        post_id = body.get("id")
        if post_id:
            await db.run(
                "UPDATE blog_posts SET title = ?, slug = ?, content = ?, excerpt = ?, "
                "thumbnail_url = ?, category_id = ?, status = ?, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                values + [post_id],
            )
        else:
            result = await db.run(
                "INSERT INTO blog_posts (title, slug, content, excerpt, thumbnail_url, "
                "category_id, status) VALUES (?, ?, ?, ?, ?, ?, ?)",
                values,
            )
            post_id = result.last_row_id

        await db.run("DELETE FROM blog_post_tags WHERE post_id = ?", [post_id])
        for name in (t.strip() for t in (body.get("tags") or "").split(",")):
            if not name:
                continue
            tag_slug = slugify(name)
            await db.run("INSERT OR IGNORE INTO blog_tags (name, slug) VALUES (?, ?)", [name, tag_slug])
            tag = await db.find_one("SELECT id FROM blog_tags WHERE slug = ?", [tag_slug])
            await db.run(
                "INSERT OR IGNORE INTO blog_post_tags (post_id, tag_id) VALUES (?, ?)",
                [post_id, tag["id"]],
            )
        logger.info(f"Post saved: {slug}")
        return {"success": True, "id": post_id, "slug": slug}

    @app.post("/admin/blog/delete")
    async def admin_delete(request: Request):
        post_id = _json_object(await request.json()).get("id")
        if not post_id:
            raise BadRequest("Missing post id")
        await db.run("DELETE FROM blog_posts WHERE id = ?", [post_id])
        await db.run("DELETE FROM blog_post_tags WHERE post_id = ?", [post_id])
        return {"success": True}

    @app.post("/admin/blog/upload")
    async def admin_upload(request: Request) -> Response:
        filename = PurePosixPath(request.query_param("filename") or "").name
        if not filename:
            raise BadRequest("Missing filename query parameter")
        data = await request.body()
        if not data:
            raise BadRequest("Empty upload")

        upload = UploadedFile(
            filename=filename,
            content=data,
            content_type=request.content_type() or "application/octet-stream",
        )
        try:
            location = await app.storage.upload(upload, f"blog/{filename}")
        except StorageFault as fault:
            logger.error(f"Upload failed: {fault}")
            return Response.json({"success": False, "error": fault.message}, status=502)
        return Response.json({"success": True, "url": location})

    # =========================================================================
    # Admin: taxonomy, menus, widgets
    # =========================================================================

    @app.get("/admin/blog/categories")
    async def admin_categories(request: Request) -> Response:
        categories = await db.find_all("SELECT * FROM blog_categories ORDER BY name ASC")
        return await app.render_admin(
            request, "Categories", await _render("admin_categories.html", categories=categories)
        )

    @app.post("/admin/blog/categories/save")
    async def admin_save_category(request: Request):
        body = _json_object(await request.json())
        if not body.get("name"):
            raise BadRequest("A category needs a name")
        values = [body["name"], body.get("slug") or slugify(body["name"]), body.get("description")]
        if body.get("id"):
            await db.run(
                "UPDATE blog_categories SET name = ?, slug = ?, description = ? WHERE id = ?",
                values + [body["id"]],
            )
        else:
            await db.run(
                "INSERT INTO blog_categories (name, slug, description) VALUES (?, ?, ?)", values
            )
        return {"success": True}

    @app.get("/admin/blog/tags")
    async def admin_tags(request: Request) -> Response:
        tags = await db.find_all("SELECT * FROM blog_tags ORDER BY name ASC")
        return await app.render_admin(request, "Tags", await _render("admin_tags.html", tags=tags))

    @app.get("/admin/blog/menus")
    async def admin_menus(request: Request) -> Response:
        menus = await db.find_all("SELECT * FROM blog_menus ORDER BY sort_order ASC")
        return await app.render_admin(
            request, "Menu Manager", await _render("admin_menus.html", menus=menus)
        )

    @app.post("/admin/blog/menus/save")
    async def admin_save_menu(request: Request):
        body = _json_object(await request.json())
        if not body.get("title") or not body.get("url"):
            raise BadRequest("A menu item needs a title and a url")
        values = [
            body.get("parent_id") or None, body["title"], body["url"],
            int(body.get("sort_order") or 0),
        ]
        if body.get("id"):
            await db.run(
                "UPDATE blog_menus SET parent_id = ?, title = ?, url = ?, sort_order = ? WHERE id = ?",
                values + [body["id"]],
            )
        else:
            await db.run(
                "INSERT INTO blog_menus (parent_id, title, url, sort_order) VALUES (?, ?, ?, ?)",
                values,
            )
        return {"success": True}

    @app.get("/admin/blog/widgets")
    async def admin_widgets(request: Request) -> Response:
        widgets = await db.find_all("SELECT * FROM blog_widgets ORDER BY sort_order ASC")
        return await app.render_admin(
            request, "Widget Manager", await _render("admin_widgets.html", widgets=widgets)
        )

    @app.post("/admin/blog/widgets/save")
    async def admin_save_widget(request: Request):
        body = _json_object(await request.json())
        if not body.get("title") or not body.get("type"):
            raise BadRequest("A widget needs a title and a type")
        values = [
            body["title"], body["type"], body.get("content"),
            int(body.get("sort_order") or 0), 1 if body.get("is_active", True) else 0,
        ]
        if body.get("id"):
            await db.run(
                "UPDATE blog_widgets SET title = ?, type = ?, content = ?, sort_order = ?, "
                "is_active = ? WHERE id = ?",
                values + [body["id"]],
            )
        else:
            await db.run(
                "INSERT INTO blog_widgets (title, type, content, sort_order, is_active) "
                "VALUES (?, ?, ?, ?, ?)",
                values,
            )
        return {"success": True}

    @app.post("/admin/blog/widgets/reorder")
    async def admin_reorder_widgets(request: Request):
        orders = _json_object(await request.json()).get("orders") or []
        for item in orders:
            await db.run(
                "UPDATE blog_widgets SET sort_order = ? WHERE id = ?",
                [item["sort_order"], item["id"]],
            )
        return {"success": True}

    registry.log("Blog Manager Mounted Successfully [OK]")
