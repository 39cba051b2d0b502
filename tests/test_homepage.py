"""
Homepage routing (homepage.py)

Tests the root-path cascade: blog redirect, static page, landing fallback.
"""

import pytest

from paspages.app import CORE_SCHEMA
from paspages.homepage import LANDING_STATUS, HomepageRouter
from paspages.manifest import ModuleKind
from paspages.view import ViewEngine

SET_SETTING = "UPDATE core_settings SET value = ? WHERE key = ?"


async def _set_homepage(db, home_type: str, target_id: str = ""):
    await db.run(SET_SETTING, [home_type, "homepage_type"])
    await db.run(SET_SETTING, [target_id, "homepage_target_id"])


# ============================================================================
# Through the application
# ============================================================================

class TestHomepageRoute:

    @pytest.mark.asyncio
    async def test_fresh_install_shows_landing(self, client):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert "PasPages - Nebula" in resp.text
        assert LANDING_STATUS in resp.text

    @pytest.mark.asyncio
    async def test_default_type_shows_landing(self, app, client):
        await app.migrate()
        resp = await client.get("/")
        assert resp.status_code == 200
        assert LANDING_STATUS in resp.text

    @pytest.mark.asyncio
    async def test_blog_type_redirects(self, app, client):
        await app.migrate()
        await _set_homepage(app.db, "blog")
        resp = await client.get("/")
        assert resp.status_code == 302
        assert resp.location == "/blog"

    @pytest.mark.asyncio
    async def test_blog_type_never_queries_pages(self, app, client, monkeypatch):
        await app.migrate()
        await _set_homepage(app.db, "blog")
        queries = []
        real_find_one = app.db.find_one

        async def recording_find_one(sql, *args, **kwargs):
            queries.append(sql)
            return await real_find_one(sql, *args, **kwargs)

        monkeypatch.setattr(app.db, "find_one", recording_find_one)
        resp = await client.get("/")
        assert resp.status_code == 302
        assert queries
        assert not any("static_pages" in sql for sql in queries)

    @pytest.mark.asyncio
    async def test_page_type_renders_static_page(self, app, client):
        await app.migrate()
        result = await app.db.run(
            "INSERT INTO static_pages (title, slug, content) VALUES (?, ?, ?)",
            ["About Us", "about-us", "<p>Hello from the about page</p>"],
        )
        await _set_homepage(app.db, "page", str(result.last_row_id))

        resp = await client.get("/")
        assert resp.status_code == 200
        assert "<title>About Us</title>" in resp.text
        assert "Hello from the about page" in resp.text

    @pytest.mark.asyncio
    async def test_missing_page_falls_back_to_landing(self, app, client):
        await app.migrate()
        await _set_homepage(app.db, "page", "999")
        resp = await client.get("/")
        assert resp.status_code == 200
        assert LANDING_STATUS in resp.text

    @pytest.mark.asyncio
    async def test_page_type_without_target(self, app, client):
        await app.migrate()
        await _set_homepage(app.db, "page", "")
        resp = await client.get("/")
        assert LANDING_STATUS in resp.text

    @pytest.mark.asyncio
    async def test_fresh_install_counts_mounted_plugins(self, app, client):
        app.registry.register_theme_view("nebula-theme", "landing", "{{plugin_count}}")
        plugins = [
            m.slug for m in app.modules
            if m.kind == ModuleKind.PLUGIN and m.slug in app.load_report.mounted
        ]
        resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.text == str(len(plugins)) == "3"

    @pytest.mark.asyncio
    async def test_active_theme_switch_changes_landing(self, app, client):
        app.registry.set_active_theme("default")
        resp = await client.get("/")
        assert "<title>PasPages Core</title>" in resp.text


# ============================================================================
# HomepageRouter in isolation
# ============================================================================

class TestHomepageRouter:

    @pytest.mark.asyncio
    async def test_pages_table_missing_logs_and_falls_back(self, registry, db):
        registry.register_theme_view("default", "landing", "LANDING {{status}}")
        await db.execute(CORE_SCHEMA)
        await _set_homepage(db, "page", "1")

        response = await HomepageRouter(registry, ViewEngine(registry)).handle(db)
        assert response.status == 200
        assert response.body.decode() == f"LANDING {LANDING_STATUS}"
        assert any("Error: Page plugin missing or table not found." in line for line in registry.logs)

    @pytest.mark.asyncio
    async def test_fallback_template_without_public_page_view(self, registry, db):
        await db.execute(CORE_SCHEMA)
        await db.execute(
            "CREATE TABLE static_pages (id INTEGER PRIMARY KEY, slug TEXT, title TEXT, content TEXT)"
        )
        await db.run(
            "INSERT INTO static_pages (id, slug, title, content) VALUES (1, 'x', 'Plain', 'Body')"
        )
        await _set_homepage(db, "page", "1")

        response = await HomepageRouter(registry, ViewEngine(registry)).handle(db)
        html = response.body.decode()
        assert "<h1>Plain</h1>" in html
        assert "<div>Body</div>" in html

    @pytest.mark.asyncio
    async def test_landing_renders_context(self, registry, db):
        registry.register_theme_view(
            "default", "landing", "{{plugin_count}}|{{core_version}}|{{system_logs}}"
        )
        registry.register_plugin("blog-manager")
        response = await HomepageRouter(registry, ViewEngine(registry)).handle(db)
        count, version, logs = response.body.decode().split("|", 2)
        assert count == "1"
        assert version == "1.0.0"
        assert "System Status: Rendering Default Landing Page." in logs

    @pytest.mark.asyncio
    async def test_landing_missing_is_500(self, registry, db):
        response = await HomepageRouter(registry, ViewEngine(registry)).handle(db)
        assert response.status == 500
        assert "View 'landing' not found in 'default'" in response.body.decode()
