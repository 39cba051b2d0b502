"""
Internationalization backed by the Registry's translation table.
"""

from typing import Optional

from .config import CoreConfig
from .registry import Registry


class I18n:
    """
    Translator bound to one locale.

    Lookup order: requested locale, then the default locale, then the key
    itself so that missing strings stay visible.
    """

    def __init__(self, registry: Registry, locale: str, default_locale: str = "en"):
        self.registry = registry
        self.locale = locale
        self.default_locale = default_locale

    def t(self, key: str) -> str:
        value = self.registry.get_translation(self.locale, key)
        if value:
            return value
        if self.locale != self.default_locale:
            value = self.registry.get_translation(self.default_locale, key)
            if value:
                return value
        return key

    __call__ = t

    @staticmethod
    def locale_from_request(request, config: Optional[CoreConfig] = None) -> str:
        """Locale named by the ``lang`` query parameter, if supported."""
        config = config or CoreConfig()
        requested = request.query_param("lang")
        if requested and requested in config.locales:
            return requested
        return config.default_locale
