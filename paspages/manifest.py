"""
Module manifests - pure data descriptors carried by every module.

A module is modelled as a tagged variant ``{kind, manifest, mount}``. The
loader dispatches on ``kind`` only and never inspects the mount callable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional


class ModuleKind(str, Enum):
    """The two kinds of installable modules."""
    PLUGIN = "plugin"
    THEME = "theme"


@dataclass(frozen=True)
class ModuleManifest:
    """
    Static descriptor of a module's identity, kind and compatibility.

    ``requires`` is optional here so that a non-conforming manifest can be
    represented; the validator refuses to admit it.
    """

    kind: ModuleKind
    slug: str
    name: str
    version: str
    requires: Optional[str] = None
    author: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModuleManifest":
        """Build a manifest from a plain mapping (``type`` aliases ``kind``)."""
        raw_kind = data.get("kind", data.get("type"))
        try:
            kind = ModuleKind(raw_kind)
        except ValueError:
            # Unknown kinds survive so the validator can report the mismatch
            kind = raw_kind
        return cls(
            kind=kind,
            slug=data.get("slug") or "",
            name=data.get("name") or "",
            version=data.get("version") or "",
            requires=data.get("requires"),
            author=data.get("author", ""),
            description=data.get("description", ""),
        )

    def to_dict(self) -> dict:
        kind = self.kind.value if isinstance(self.kind, ModuleKind) else self.kind
        return {
            "kind": kind,
            "slug": self.slug,
            "name": self.name,
            "version": self.version,
            "requires": self.requires,
            "author": self.author,
            "description": self.description,
        }


MountFn = Callable[[Any], None]


@dataclass(frozen=True)
class Module:
    """A discovered module: manifest plus mount capability."""

    manifest: Optional[ModuleManifest]
    mount: Optional[MountFn] = None
    source: str = "<unknown>"

    @property
    def kind(self) -> Optional[ModuleKind]:
        return self.manifest.kind if self.manifest else None

    @property
    def slug(self) -> str:
        return self.manifest.slug if self.manifest and self.manifest.slug else "unknown"

    @classmethod
    def from_object(cls, obj: Any, source: Optional[str] = None) -> "Module":
        """
        Adapt an imported Python module exposing ``manifest`` and ``mount``.

        A missing or unreadable manifest yields ``manifest=None``.
        """
        raw = getattr(obj, "manifest", None)
        if isinstance(raw, ModuleManifest):
            manifest = raw
        elif isinstance(raw, Mapping):
            manifest = ModuleManifest.from_dict(raw)
        else:
            manifest = None

        mount = getattr(obj, "mount", None)
        return cls(
            manifest=manifest,
            mount=mount if callable(mount) else None,
            source=source or getattr(obj, "__name__", "<unknown>"),
        )
