"""
PasPages Core - extensible content-management backend.

The core discovers independently packaged plugins and themes, validates their
manifests, mounts their routes, and gives them shared access to settings,
templates and schema evolution.
"""

__version__ = "1.0.0"

# Compatibility line advertised to modules; defined before any submodule
# import because the validator reads it at import time.
CORE_VERSION = "1.0.0"

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    ConfigFault,
    ConfigInvalidFault,
    DiscoveryFault,
    DatabaseConnectionFault,
    QueryFault,
    StorageFault,
)
from .config import CoreConfig, ConfigLoader, load_config
from .manifest import Module, ModuleKind, ModuleManifest
from .validator import ManifestValidator, ValidationResult
from .registry import MenuItem, Registry, SchemaRecord
from .db import Database, ExecResult, RunResult
from .migrator import MigrationOutcome, MigrationStatus, Migrator
from .view import ViewEngine, read_view, substitute, template_environment
from .i18n import I18n
from .loader import LoadReport, ModuleLoader, discover_modules
from .homepage import HomepageRouter
from .app import PasPages, create_app

__all__ = [
    "__version__",
    "CORE_VERSION",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ConfigInvalidFault",
    "DiscoveryFault",
    "DatabaseConnectionFault",
    "QueryFault",
    "StorageFault",
    # Config
    "CoreConfig",
    "ConfigLoader",
    "load_config",
    # Modules
    "Module",
    "ModuleKind",
    "ModuleManifest",
    "ManifestValidator",
    "ValidationResult",
    "ModuleLoader",
    "LoadReport",
    "discover_modules",
    # Registry
    "Registry",
    "MenuItem",
    "SchemaRecord",
    # Persistence
    "Database",
    "ExecResult",
    "RunResult",
    "Migrator",
    "MigrationOutcome",
    "MigrationStatus",
    # Rendering
    "ViewEngine",
    "read_view",
    "substitute",
    "template_environment",
    "I18n",
    "HomepageRouter",
    # Application
    "PasPages",
    "create_app",
]
