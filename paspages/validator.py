"""
Manifest validator - decides whether a module may be mounted.

Pure: no state, no I/O, never raises. Rejections are returned as a
``ValidationResult`` so operator tooling can show the reason.
"""

from dataclasses import dataclass
import logging
from typing import Any, Optional, Union

from . import CORE_VERSION
from .manifest import Module, ModuleKind

logger = logging.getLogger("paspages.validator")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of manifest admission."""

    is_valid: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_valid


class ManifestValidator:
    """
    Validates module manifests against the running core.

    Checks, in order:
    - module and manifest are present
    - slug and version are present
    - declared kind equals the expected kind
    - ``requires`` is declared (strict mode)
    - major version of ``requires`` equals the core's major version
    """

    def __init__(self, core_version: str = CORE_VERSION):
        self.core_version = core_version

    def validate(
        self,
        module: Any,
        expected_kind: Union[ModuleKind, str],
    ) -> ValidationResult:
        if module is None:
            return ValidationResult(False, "Manifest is missing or module is undefined")
        if not isinstance(module, Module):
            module = Module.from_object(module)

        manifest = module.manifest
        if manifest is None:
            return ValidationResult(False, "Manifest is missing or module is undefined")

        if not manifest.slug or not manifest.version:
            return ValidationResult(
                False, f"Invalid manifest structure in {manifest.slug or 'unknown'}"
            )

        expected = _kind_value(expected_kind)
        declared = _kind_value(manifest.kind)
        if declared != expected:
            return ValidationResult(
                False,
                f"Type mismatch for {manifest.slug}. Expected {expected}, got {declared}",
            )

        if not manifest.requires:
            return ValidationResult(
                False,
                f"STRICT MODE: Module {manifest.slug} MUST define 'requires' version.",
            )

        if not self.is_compatible(manifest.requires):
            return ValidationResult(
                False,
                f"Incompatible Version. {manifest.slug} requires v{manifest.requires}, "
                f"Core is v{self.core_version}",
            )

        return ValidationResult(True)

    def is_compatible(self, required_version: Any) -> bool:
        """Strict major-version match; unparseable versions are incompatible."""
        core_major = _major(self.core_version)
        required_major = _major(required_version)
        if core_major is None or required_major is None:
            logger.warning(
                "Version parsing failed (core=%r, required=%r)",
                self.core_version, required_version,
            )
            return False
        return core_major == required_major


def _major(version: Any) -> Optional[int]:
    if not isinstance(version, str):
        return None
    head = version.strip().split(".", 1)[0]
    if not (head.isascii() and head.isdigit()):
        return None
    return int(head)


def _kind_value(kind: Any) -> Any:
    return kind.value if isinstance(kind, ModuleKind) else kind
