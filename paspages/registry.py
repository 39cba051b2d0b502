"""
Registry - the mediator of all cross-module state.

One Registry is constructed per application and passed by reference to every
component. It holds independent in-memory tables:

- admin menu entries
- schema records (queued for the migrator, never deduplicated here)
- templates keyed ``"<theme>:<view>"`` or by bare view name
- the active theme pointer
- loaded plugin slugs
- translations (locale -> key -> text)
- an append-only diagnostic log

Every operation is synchronous and never raises; misses return ``None`` or an
empty collection. Collisions keep last-writer-wins resolution but are reported
as warnings in the diagnostic log.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Dict, Iterator, List, Optional, Set

logger = logging.getLogger("paspages.registry")

MENU_CATEGORIES = ("plugin", "theme", "settings", "core")
CORE_OWNER = "core"


@dataclass(frozen=True)
class MenuItem:
    """An admin sidebar entry."""

    title: str
    path: str
    category: str = "plugin"
    icon: Optional[str] = None
    order: Optional[int] = None


@dataclass(frozen=True)
class SchemaRecord:
    """Raw schema text declared by a module at a given version."""

    slug: str
    version: str
    sql: str


class Registry:
    """Process-wide state store, explicitly constructed."""

    def __init__(self, default_theme: str = "default"):
        self._menus: List[MenuItem] = []
        self._menu_owners: Dict[str, str] = {}
        self._schemas: List[SchemaRecord] = []
        self._templates: Dict[str, str] = {}
        self._template_owners: Dict[str, str] = {}
        # Bare names written explicitly through register_view
        self._explicit_views: Set[str] = set()
        self._active_theme = default_theme
        self._plugins: List[str] = []
        self._translations: Dict[str, Dict[str, str]] = {}
        self._logs: List[str] = []
        self._owner = CORE_OWNER

    # =========================================================================
    # Ownership
    # =========================================================================

    @contextmanager
    def owner(self, slug: str) -> Iterator["Registry"]:
        """Attribute registrations made inside the block to ``slug``."""
        previous = self._owner
        self._owner = slug
        try:
            yield self
        finally:
            self._owner = previous

    @property
    def current_owner(self) -> str:
        return self._owner

    # =========================================================================
    # Menus
    # =========================================================================

    def register_menu(self, item: MenuItem) -> None:
        """Append an admin menu entry. Duplicate paths are kept but reported."""
        previous = self._menu_owners.get(item.path)
        if previous is not None:
            self._collision("menu path", item.path, previous)
        self._menu_owners[item.path] = self._owner
        self._menus.append(item)

    def get_menus(self, category: Optional[str] = None) -> List[MenuItem]:
        if category:
            return [m for m in self._menus if m.category == category]
        return list(self._menus)

    # =========================================================================
    # Schemas
    # =========================================================================

    def register_schema(self, slug: str, version: str, sql: str) -> None:
        """
        Queue schema text for the migrator.

        Repeated (slug, version) pairs are kept; the migration ledger is what
        makes re-application safe.
        """
        self._schemas.append(SchemaRecord(slug=slug, version=version, sql=sql))
        self.log(f"Schema registered: {slug} v{version}")

    def get_schemas(self) -> List[SchemaRecord]:
        return list(self._schemas)

    def get_schema(self, slug: str) -> Optional[SchemaRecord]:
        """First schema registered under ``slug``."""
        for record in self._schemas:
            if record.slug == slug:
                return record
        return None

    # =========================================================================
    # Templates & themes
    # =========================================================================

    def register_theme_view(self, theme: str, view: str, html: str) -> None:
        """
        Register a theme-scoped view.

        A theme's ``landing`` view also becomes the bare ``landing`` alias so
        that any theme without its own landing still resolves one. An alias
        registered explicitly with ``register_view`` is never replaced.
        """
        self._put_template(f"{theme}:{view}", html)
        if view == "landing" and view not in self._explicit_views:
            self._put_template(view, html)

    def register_view(self, name: str, html: str) -> None:
        """Register a theme-agnostic view under its bare name."""
        self._explicit_views.add(name)
        self._put_template(name, html)

    def get_theme_view(self, theme: str, view: str) -> Optional[str]:
        return self._templates.get(f"{theme}:{view}")

    def get_view(self, view: str) -> Optional[str]:
        """Resolve ``(active_theme, view)`` first, then the bare ``view``."""
        scoped = self._templates.get(f"{self._active_theme}:{view}")
        if scoped is not None:
            return scoped
        return self._templates.get(view)

    def set_active_theme(self, slug: str) -> None:
        self._active_theme = slug
        self.log(f"Theme switched to: {slug}")

    @property
    def active_theme(self) -> str:
        return self._active_theme

    def _put_template(self, key: str, html: str) -> None:
        previous = self._template_owners.get(key)
        # A module re-registering its own key is not a collision
        if previous is not None and previous != self._owner:
            self._collision("template", key, previous)
        self._template_owners[key] = self._owner
        self._templates[key] = html

    # =========================================================================
    # Plugins
    # =========================================================================

    def register_plugin(self, slug: str) -> None:
        if slug not in self._plugins:
            self._plugins.append(slug)
            self.log(f"Plugin mounted: {slug}")

    @property
    def plugins(self) -> List[str]:
        return list(self._plugins)

    @property
    def plugin_count(self) -> int:
        return len(self._plugins)

    # =========================================================================
    # Translations
    # =========================================================================

    def register_translation(self, locale: str, data: Dict[str, str]) -> None:
        """Merge ``data`` over the locale's table; unmentioned keys survive."""
        self._translations.setdefault(locale, {}).update(data)

    def get_translation(self, locale: str, key: str) -> Optional[str]:
        value = self._translations.get(locale, {}).get(key)
        return value or None

    def get_translations(self, locale: str) -> Dict[str, str]:
        return dict(self._translations.get(locale, {}))

    # =========================================================================
    # Diagnostic log
    # =========================================================================

    def log(self, message: str, level: int = logging.INFO) -> None:
        """Append a ``[HH:MM:SS] message`` line stamped in UTC."""
        stamp = datetime.now(timezone.utc).strftime("%H:%M:%S")
        self._logs.append(f"[{stamp}] {message}")
        logger.log(level, message)

    @property
    def logs(self) -> List[str]:
        return list(self._logs)

    def _collision(self, what: str, key: str, previous_owner: str) -> None:
        message = (
            f"WARNING: {what} '{key}' registered by '{previous_owner}' "
            f"is overridden by '{self._owner}'"
        )
        self.log(message, level=logging.WARNING)

    def snapshot(self) -> dict:
        """Read-only view of the registry for operator tooling."""
        return {
            "active_theme": self._active_theme,
            "plugins": self.plugins,
            "menus": [m.path for m in self._menus],
            "schemas": [f"{s.slug}@{s.version}" for s in self._schemas],
            "templates": sorted(self._templates),
            "locales": sorted(self._translations),
            "log_lines": len(self._logs),
        }
