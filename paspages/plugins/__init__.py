"""
Built-in plugins.

Every sub-package exposes ``manifest`` and ``mount(app)`` and is discovered
in name order by ``paspages.loader.discover_package``.
"""
