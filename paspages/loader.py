"""
Module discovery and loading.

Discovery imports the built-in plugin and theme packages, then any module
published under the ``paspages.modules`` entry-point group. Loading walks the
discovered list once, in order: each module is validated against its own
declared kind and, when admitted, mounted against the application.
"""

from dataclasses import dataclass, field
import importlib
import importlib.metadata
import logging
import pkgutil
from typing import Any, Iterable, List, Sequence, Tuple

from .faults import DiscoveryFault
from .manifest import Module, ModuleKind
from .registry import Registry
from .validator import ManifestValidator

logger = logging.getLogger("paspages.loader")

BUILTIN_PACKAGES = ("paspages.plugins", "paspages.themes")
ENTRYPOINT_GROUP = "paspages.modules"


# ============================================================================
# Discovery
# ============================================================================

def _import(name: str) -> Any:
    try:
        return importlib.import_module(name)
    except Exception as exc:
        raise DiscoveryFault(name, f"{type(exc).__name__}: {exc}") from exc


def discover_package(package_name: str) -> List[Module]:
    """Import every direct sub-module of ``package_name``, sorted by name."""
    package = _import(package_name)
    found: List[Module] = []
    names = sorted(
        name for _, name, _ in pkgutil.iter_modules(package.__path__)
        if not name.startswith("_")
    )
    for name in names:
        dotted = f"{package_name}.{name}"
        found.append(Module.from_object(_import(dotted), source=dotted))
    return found


def discover_entrypoints(group: str = ENTRYPOINT_GROUP) -> List[Module]:
    """Load every module published under the entry-point ``group``."""
    found: List[Module] = []
    for ep in importlib.metadata.entry_points(group=group):
        try:
            obj = ep.load()
        except Exception as exc:
            raise DiscoveryFault(ep.value, f"{type(exc).__name__}: {exc}") from exc
        found.append(Module.from_object(obj, source=f"entry point '{ep.name}'"))
        logger.info(f"Discovered module '{ep.name}' via entry point")
    return found


def discover_modules(
    packages: Sequence[str] = BUILTIN_PACKAGES,
    entry_point_group: str = ENTRYPOINT_GROUP,
) -> List[Module]:
    """
    Discover installable modules.

    Raises:
        DiscoveryFault: When any candidate fails to import
    """
    modules: List[Module] = []
    for package_name in packages:
        modules.extend(discover_package(package_name))
    if entry_point_group:
        modules.extend(discover_entrypoints(entry_point_group))
    logger.debug(f"Discovered {len(modules)} modules")
    return modules


# ============================================================================
# Loading
# ============================================================================

@dataclass
class LoadReport:
    """What happened to each discovered module."""

    mounted: List[str] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mounted": list(self.mounted),
            "rejected": [{"slug": s, "reason": r} for s, r in self.rejected],
            "failed": [{"slug": s, "error": e} for s, e in self.failed],
        }


class ModuleLoader:
    """Validates and mounts discovered modules against an application."""

    def __init__(self, registry: Registry, validator: ManifestValidator):
        self.registry = registry
        self.validator = validator

    def load(self, modules: Iterable[Any], app: Any) -> LoadReport:
        report = LoadReport()
        for candidate in modules:
            module = candidate if isinstance(candidate, Module) else Module.from_object(candidate)
            self._load_one(module, app, report)
        return report

    def _load_one(self, module: Module, app: Any, report: LoadReport) -> None:
        if module.manifest is None:
            reason = "Manifest is missing or module is undefined"
            report.rejected.append((module.slug, reason))
            logger.warning(f"Rejected {module.source}: {reason}")
            return

        if not isinstance(module.kind, ModuleKind):
            reason = f"Unknown module kind {module.kind!r} for {module.slug}"
            report.rejected.append((module.slug, reason))
            logger.warning(f"Rejected {module.slug}: {reason}")
            return

        result = self.validator.validate(module, module.kind)
        if not result:
            report.rejected.append((module.slug, result.error))
            logger.warning(f"Rejected {module.slug}: {result.error}")
            return

        if module.mount is None:
            reason = "Module does not expose a mount function"
            report.rejected.append((module.slug, reason))
            logger.warning(f"Rejected {module.slug}: {reason}")
            return

        manifest = module.manifest
        try:
            with self.registry.owner(manifest.slug):
                module.mount(app)
        except Exception as exc:
            report.failed.append((manifest.slug, str(exc)))
            logger.error(f"Mount failed for {manifest.slug}: {exc}", exc_info=True)
            self.registry.log(f"ERROR: Mount failed for {manifest.slug}: {exc}", level=logging.ERROR)
            return

        # Only a plugin whose mount completed counts as loaded
        if module.kind == ModuleKind.PLUGIN:
            self.registry.register_plugin(manifest.slug)
        report.mounted.append(manifest.slug)
        self.registry.log(f"Module mounted: {manifest.slug} v{manifest.version}")
