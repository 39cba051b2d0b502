"""
Router - path-pattern routing for modules and the core.

Patterns use ``{name}`` for one path segment and ``{name:path}`` for the
rest of the path. Static routes use an O(1) dict lookup per method;
parameterized routes are tried in registration order.
"""

from dataclasses import dataclass
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

Handler = Callable[..., Awaitable[Any]]

_PARAM_RE = re.compile(r"\{([a-zA-Z_][a-zA-Z0-9_]*)(?::(path))?\}")

# Empty dict reused to avoid per-request allocations
_EMPTY_DICT: Dict[str, str] = {}


@dataclass
class Route:
    """A registered route."""
    method: str
    path: str
    handler: Handler
    compiled_re: Optional["re.Pattern"] = None
    param_names: Tuple[str, ...] = ()

    @property
    def is_static(self) -> bool:
        return self.compiled_re is None


@dataclass
class RouteMatch:
    """Result of a successful route match."""
    route: Route
    params: Dict[str, str]


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def compile_path(path: str) -> Tuple[Optional["re.Pattern"], Tuple[str, ...]]:
    """Compile a route pattern; static paths yield ``(None, ())``."""
    if "{" not in path:
        return None, ()
    names: List[str] = []
    pattern = ""
    last = 0
    for m in _PARAM_RE.finditer(path):
        pattern += re.escape(path[last:m.start()])
        names.append(m.group(1))
        segment = ".+" if m.group(2) == "path" else "[^/]+"
        pattern += f"(?P<{m.group(1)}>{segment})"
        last = m.end()
    pattern += re.escape(path[last:])
    return re.compile(f"^{pattern}/?$"), tuple(names)


class Router:
    """
    Collects routes and matches requests against them.

    Usage:
        router = Router()

        @router.get("/p/{slug}")
        async def page(request):
            ...

        app_router.include("/admin", admin_router)
    """

    def __init__(self):
        self.routes: List[Route] = []
        self._static_routes: Dict[str, Dict[str, Route]] = {}
        self._dynamic_routes: Dict[str, List[Route]] = {}

    # ── Registration ─────────────────────────────────────────────────

    def add_route(self, method: str, path: str, handler: Handler) -> Route:
        method = method.upper()
        compiled_re, names = compile_path(path)
        route = Route(method, path, handler, compiled_re, names)
        self.routes.append(route)
        if route.is_static:
            # Last registration of a static path wins
            self._static_routes.setdefault(method, {})[_normalize(path)] = route
        else:
            self._dynamic_routes.setdefault(method, []).append(route)
        return route

    def route(self, path: str, methods: Tuple[str, ...] = ("GET",)) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            for method in methods:
                self.add_route(method, path, handler)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, ("GET",))

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, ("POST",))

    def include(self, prefix: str, router: "Router") -> None:
        """Mount every route of ``router`` under ``prefix``."""
        prefix = prefix.rstrip("/")
        for route in router.routes:
            sub = route.path if route.path != "/" else ""
            self.add_route(route.method, f"{prefix}{sub}" or "/", route.handler)

    # ── Matching ─────────────────────────────────────────────────────

    def match_sync(self, path: str, method: str) -> Optional[RouteMatch]:
        """Static O(1) lookup first, then parameterized routes in order."""
        method = "GET" if method == "HEAD" else method

        static_map = self._static_routes.get(method)
        if static_map:
            hit = static_map.get(_normalize(path))
            if hit is not None:
                return RouteMatch(route=hit, params=_EMPTY_DICT)

        for route in self._dynamic_routes.get(method, ()):
            m = route.compiled_re.match(path)
            if m is not None:
                return RouteMatch(route=route, params=m.groupdict())
        return None

