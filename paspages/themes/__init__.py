"""
Built-in themes.

A theme registers scoped views (at least ``landing``) and may make itself
the active theme when mounted.
"""
