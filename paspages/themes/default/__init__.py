"""
Default theme - the fallback landing page.

It registers its views but never claims the active-theme pointer, so any
other theme that does takes precedence.
"""

from ...manifest import ModuleKind, ModuleManifest
from ...view import read_view

manifest = ModuleManifest(
    kind=ModuleKind.THEME,
    slug="default",
    name="PasPages Default Theme",
    version="1.0.0",
    requires="1.0.0",
    author="PasPages Core",
)


def mount(app) -> None:
    app.registry.register_theme_view(manifest.slug, "landing", read_view(__name__, "landing.html"))
