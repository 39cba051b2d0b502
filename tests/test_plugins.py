"""
Built-in modules: pages manager, blog manager, language pack and themes.
"""

from pathlib import Path
from xml.etree import ElementTree

import pytest
import pytest_asyncio

from paspages.plugins.blog import build_feed
from paspages.utils import slugify


@pytest_asyncio.fixture
async def migrated(app):
    outcomes = await app.migrate()
    assert all(o.ok for o in outcomes)
    return app


# ============================================================================
# Pages manager
# ============================================================================

class TestPages:

    @pytest.mark.asyncio
    async def test_save_then_view(self, migrated, client):
        resp = await client.post("/admin/pages/save", json={
            "title": "About Us", "content": "<p>We build things.</p>",
        })
        data = resp.json()
        assert data["success"] is True
        assert data["slug"] == "about-us"

        page = await client.get("/p/about-us")
        assert page.status_code == 200
        assert "<title>About Us</title>" in page.text
        assert "We build things." in page.text

    @pytest.mark.asyncio
    async def test_draft_not_public(self, migrated, client):
        await client.post("/admin/pages/save", json={"title": "Secret", "status": "draft"})
        resp = await client.get("/p/secret")
        assert resp.status_code == 404
        assert resp.text == "404 - Page Not Found"

        listed = (await client.get("/api/pages/list")).json()
        assert listed == []

    @pytest.mark.asyncio
    async def test_update_and_list(self, migrated, client):
        created = (await client.post("/admin/pages/save", json={"title": "Zeta"})).json()
        await client.post("/admin/pages/save", json={"title": "Alpha"})
        await client.post("/admin/pages/save", json={
            "id": created["id"], "title": "Zeta Renamed", "slug": "zeta",
        })
        listed = (await client.get("/api/pages/list")).json()
        assert [p["title"] for p in listed] == ["Alpha", "Zeta Renamed"]

    @pytest.mark.asyncio
    async def test_title_required(self, migrated, client):
        resp = await client.post("/admin/pages/save", json={"content": "x"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, migrated, client):
        created = (await client.post("/admin/pages/save", json={"title": "Gone"})).json()
        assert (await client.post("/admin/pages/delete", json={"id": created["id"]})).json() == {
            "success": True,
        }
        assert (await client.get("/p/gone")).status_code == 404
        assert (await client.post("/admin/pages/delete", json={})).status_code == 400

    @pytest.mark.asyncio
    async def test_admin_screens(self, migrated, client):
        await client.post("/admin/pages/save", json={"title": "Listed Page"})
        listing = await client.get("/admin/pages")
        assert listing.status_code == 200
        assert "Listed Page" in listing.text
        editor = await client.get("/admin/pages/editor?id=1")
        assert editor.status_code == 200
        assert "Listed Page" in editor.text

    @pytest.mark.asyncio
    async def test_unmigrated_page_is_500(self, client):
        resp = await client.get("/p/anything")
        assert resp.status_code == 500
        assert resp.text == "Internal Server Error"


# ============================================================================
# Blog manager
# ============================================================================

class TestBlog:

    @pytest.mark.asyncio
    async def test_post_with_tags(self, migrated, client):
        await client.post("/admin/blog/categories/save", json={"name": "News"})
        saved = (await client.post("/admin/blog/save", json={
            "title": "Hello World", "content": "First post", "category_id": 1,
            "tags": "Python, Web Dev, ,python",
        })).json()
        assert saved["slug"] == "hello-world"

        post = (await client.get("/api/blog/post/hello-world")).json()
        assert post["category_name"] == "News"
        assert {t["slug"] for t in post["tags_list"]} == {"python", "web-dev"}

        again = (await client.get("/api/blog/post/hello-world")).json()
        assert again["views"] == post["views"] + 1

    @pytest.mark.asyncio
    async def test_missing_post(self, migrated, client):
        resp = await client.get("/api/blog/post/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}

    @pytest.mark.asyncio
    async def test_filters(self, migrated, client):
        await client.post("/admin/blog/categories/save", json={"name": "Tech"})
        await client.post("/admin/blog/save", json={"title": "Rust notes", "category_id": 1})
        await client.post("/admin/blog/save", json={"title": "Garden diary", "tags": "outdoors"})
        await client.post("/admin/blog/save", json={"title": "Draft", "status": "draft"})

        titles = lambda resp: sorted(p["title"] for p in resp.json())
        assert titles(await client.get("/api/blog")) == ["Garden diary", "Rust notes"]
        assert titles(await client.get("/api/blog?category=tech")) == ["Rust notes"]
        assert titles(await client.get("/api/blog?tag=outdoors")) == ["Garden diary"]
        assert titles(await client.get("/api/blog", query={"search": "diary"})) == ["Garden diary"]

    @pytest.mark.asyncio
    async def test_public_pages_render(self, migrated, client):
        for path in ("/blog", "/blog/category/tech", "/blog/tag/python"):
            resp = await client.get(path)
            assert resp.status_code == 200
            assert "<title>Blog</title>" in resp.text
        post = await client.get("/post/hello-world")
        assert post.status_code == 200
        assert "hello-world" in post.text

    @pytest.mark.asyncio
    async def test_feed(self, migrated, client):
        await client.post("/admin/blog/save", json={"title": "Feed Item"})
        resp = await client.get("/blog/feed")
        assert resp.status_code == 200
        assert resp.content_type == "application/xml"

        channel = ElementTree.fromstring(resp.body).find("channel")
        assert channel.find("link").text == "http://testserver/blog"
        item = channel.find("item")
        assert item.find("title").text == "Feed Item"
        assert item.find("link").text == "http://testserver/post/feed-item"
        assert item.find("pubDate").text.endswith("GMT")

    def test_build_feed_empty(self):
        root = ElementTree.fromstring(build_feed("https://example.com", []))
        assert root.tag == "rss"
        assert root.find("channel/item") is None

    @pytest.mark.asyncio
    async def test_menus_and_widgets(self, migrated, client):
        await client.post("/admin/blog/menus/save", json={"title": "Home", "url": "/", "sort_order": 2})
        await client.post("/admin/blog/menus/save", json={"title": "Blog", "url": "/blog", "sort_order": 1})
        menus = (await client.get("/api/blog/menus")).json()
        assert [m["title"] for m in menus] == ["Blog", "Home"]

        await client.post("/admin/blog/widgets/save", json={"title": "A", "type": "html"})
        await client.post("/admin/blog/widgets/save", json={"title": "B", "type": "html"})
        await client.post("/admin/blog/widgets/save", json={"title": "Off", "type": "html", "is_active": False})
        await client.post("/admin/blog/widgets/reorder", json={"orders": [
            {"id": 1, "sort_order": 5}, {"id": 2, "sort_order": 1},
        ]})
        widgets = (await client.get("/api/blog/widgets")).json()
        assert [w["title"] for w in widgets] == ["B", "A"]

    @pytest.mark.asyncio
    async def test_sidebar_counts(self, migrated, client):
        await client.post("/admin/blog/categories/save", json={"name": "News"})
        await client.post("/admin/blog/save", json={"title": "One", "category_id": 1})
        sidebar = (await client.get("/api/blog/sidebar")).json()
        assert sidebar["categories"][0]["count"] == 1

    @pytest.mark.asyncio
    async def test_delete_post(self, migrated, client):
        saved = (await client.post("/admin/blog/save", json={"title": "Bye", "tags": "x"})).json()
        await client.post("/admin/blog/delete", json={"id": saved["id"]})
        assert (await client.get("/api/blog/post/bye")).status_code == 404

    @pytest.mark.asyncio
    async def test_admin_screens(self, migrated, client):
        for path in (
            "/admin/blog", "/admin/blog/editor", "/admin/blog/categories",
            "/admin/blog/tags", "/admin/blog/menus", "/admin/blog/widgets",
        ):
            resp = await client.get(path)
            assert resp.status_code == 200, path

    @pytest.mark.asyncio
    async def test_validation(self, migrated, client):
        assert (await client.post("/admin/blog/save", json={})).status_code == 400
        assert (await client.post("/admin/blog/save", json=["x"])).status_code == 400
        assert (await client.post("/admin/blog/menus/save", json={"title": "x"})).status_code == 400
        assert (await client.post("/admin/blog/widgets/save", json={"title": "x"})).status_code == 400


class TestUpload:

    @pytest.mark.asyncio
    async def test_local_upload(self, app, client, config):
        resp = await client.post(
            "/admin/blog/upload?filename=cover.png",
            body=b"\x89PNG data",
            headers={"content-type": "image/png"},
        )
        assert resp.json() == {"success": True, "url": "blog/cover.png"}
        assert (Path(config.storage_dir) / "blog" / "cover.png").read_bytes() == b"\x89PNG data"

    @pytest.mark.asyncio
    async def test_filename_directories_stripped(self, client, config):
        resp = await client.post("/admin/blog/upload?filename=../../etc/passwd", body=b"x")
        assert resp.json()["url"] == "blog/passwd"

    @pytest.mark.asyncio
    async def test_missing_filename_or_body(self, client):
        assert (await client.post("/admin/blog/upload", body=b"x")).status_code == 400
        assert (await client.post("/admin/blog/upload?filename=a.png")).status_code == 400

    @pytest.mark.asyncio
    async def test_misconfigured_driver_is_502(self, migrated, client):
        await client.post("/admin/settings/storage", json={"storage_driver": "cloudinary"})
        resp = await client.post("/admin/blog/upload?filename=a.png", body=b"x")
        assert resp.status_code == 502
        assert resp.json()["success"] is False


# ============================================================================
# Language pack & themes
# ============================================================================

class TestLanguagePack:

    def test_indonesian_registered(self, app):
        assert app.registry.get_translation("id", "admin_title") == "Panel Admin"
        assert any("Indonesian language loaded." in line for line in app.registry.logs)


class TestThemes:

    def test_nebula_active_after_boot(self, app):
        assert app.registry.active_theme == "nebula-theme"
        assert app.mounted_themes() == ["default", "nebula-theme"]

    @pytest.mark.asyncio
    async def test_nebula_save_echoes(self, client):
        resp = await client.post("/admin/theme/nebula/save", json={"accent": "#7c3aed"})
        assert resp.json() == {
            "success": True,
            "message": "Theme settings saved!",
            "data": {"accent": "#7c3aed"},
        }

    @pytest.mark.asyncio
    async def test_nebula_save_requires_object(self, client):
        resp = await client.post("/admin/theme/nebula/save", json=[1, 2])
        assert resp.status_code == 400


class TestSlugify:

    @pytest.mark.parametrize("text,expected", [
        ("Hello World", "hello-world"),
        ("  Python 3.12 -- Release!  ", "python-3-12-release"),
        ("Web Dev", "web-dev"),
    ])
    def test_slugify(self, text, expected):
        assert slugify(text) == expected
