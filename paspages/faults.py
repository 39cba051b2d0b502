"""
PasPages Faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- Domain-specific faults raised by the core

Admission errors and migration errors are *values* (``ValidationResult``,
``MigrationOutcome``), not faults. Faults are reserved for failures that
must terminate the current operation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain Enums
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines logging level and whether the operation may continue.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.REGISTRY = FaultDomain("registry", "Module discovery and loading errors")
FaultDomain.DATABASE = FaultDomain("database", "Persistence errors")
FaultDomain.STORAGE = FaultDomain("storage", "File storage driver errors")
FaultDomain.SECURITY = FaultDomain("security", "Security and credentials")
FaultDomain.HTTP = FaultDomain("http", "Malformed client requests")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.REGISTRY: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.DATABASE: {"severity": Severity.ERROR, "retryable": True},
    FaultDomain.STORAGE: {"severity": Severity.ERROR, "retryable": True},
    FaultDomain.SECURITY: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.HTTP: {"severity": Severity.WARN, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "QUERY_FAILED")
        message: Human-readable summary
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain (CONFIG, DATABASE, ...)
        retryable: Whether this fault can be retried
        public: Whether safe to expose to client
        metadata: Additional context data
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize fault for logs and JSON responses."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            retryable=False,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class DiscoveryFault(Fault):
    """A module could not be imported during discovery."""

    def __init__(self, target: str, reason: str, **kwargs):
        super().__init__(
            code="MODULE_DISCOVERY_FAILED",
            message=f"Module discovery failed for '{target}': {reason}",
            domain=FaultDomain.REGISTRY,
            severity=Severity.FATAL,
            metadata={"target": target, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# DATABASE Faults
# ============================================================================

class DatabaseConnectionFault(Fault):
    """Database connection failed."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="DB_CONNECTION_FAILED",
            message=f"Database connection failed ({url}): {reason}",
            domain=FaultDomain.DATABASE,
            severity=Severity.FATAL,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


class QueryFault(Fault):
    """Query execution failed."""

    def __init__(self, operation: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_FAILED",
            message=f"Query ({operation}) failed: {reason}",
            domain=FaultDomain.DATABASE,
            metadata={"operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# STORAGE Faults
# ============================================================================

class StorageFault(Fault):
    """A storage driver is misconfigured or its backend rejected the upload."""

    def __init__(self, driver: str, reason: str, **kwargs):
        super().__init__(
            code="STORAGE_UPLOAD_FAILED",
            message=f"Storage driver '{driver}' failed: {reason}",
            domain=FaultDomain.STORAGE,
            metadata={"driver": driver, "reason": reason, **kwargs.get("metadata", {})},
        )


__all__ = [
    "Severity",
    "FaultDomain",
    "Fault",
    "ConfigFault",
    "ConfigInvalidFault",
    "DiscoveryFault",
    "DatabaseConnectionFault",
    "QueryFault",
    "StorageFault",
]
