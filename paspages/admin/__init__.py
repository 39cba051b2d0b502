"""
Admin HTTP surface mounted under ``/admin``.
"""

from .routes import SETTING_GROUPS, build_admin_router, render_admin

__all__ = ["SETTING_GROUPS", "build_admin_router", "render_admin"]
