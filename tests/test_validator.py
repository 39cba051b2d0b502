"""
Manifest validator (validator.py)

Tests admission checks, their order and major-version compatibility.
"""

import types

import pytest

from paspages.manifest import Module, ModuleKind, ModuleManifest
from paspages.validator import ManifestValidator, ValidationResult


# ============================================================================
# Admission
# ============================================================================

class TestAdmission:

    def test_valid_plugin_admitted(self, make_module):
        result = ManifestValidator("1.0.0").validate(make_module("blog"), ModuleKind.PLUGIN)
        assert result == ValidationResult(True)
        assert bool(result) is True
        assert result.error is None

    def test_none_module_rejected(self):
        result = ManifestValidator().validate(None, ModuleKind.PLUGIN)
        assert not result
        assert result.error == "Manifest is missing or module is undefined"

    def test_module_without_manifest_rejected(self):
        result = ManifestValidator().validate(Module(manifest=None), ModuleKind.THEME)
        assert not result
        assert "Manifest is missing" in result.error

    def test_missing_slug_rejected(self, make_module):
        result = ManifestValidator().validate(make_module(""), ModuleKind.PLUGIN)
        assert result.error == "Invalid manifest structure in unknown"

    def test_missing_version_rejected(self, make_module):
        result = ManifestValidator().validate(make_module("blog", version=""), ModuleKind.PLUGIN)
        assert result.error == "Invalid manifest structure in blog"

    def test_kind_mismatch_rejected(self, make_module):
        module = make_module("nebula", kind=ModuleKind.THEME)
        result = ManifestValidator().validate(module, ModuleKind.PLUGIN)
        assert result.error == "Type mismatch for nebula. Expected plugin, got theme"

    def test_missing_requires_rejected(self, make_module):
        result = ManifestValidator().validate(make_module("legacy", requires=None), ModuleKind.PLUGIN)
        assert not result
        assert result.error == "STRICT MODE: Module legacy MUST define 'requires' version."

    def test_kind_checked_before_requires(self, make_module):
        module = make_module("x", kind=ModuleKind.THEME, requires=None)
        result = ManifestValidator().validate(module, ModuleKind.PLUGIN)
        assert result.error.startswith("Type mismatch")

    def test_accepts_plain_python_module(self):
        obj = types.SimpleNamespace(
            manifest={"type": "plugin", "slug": "raw", "version": "1.0.0", "requires": "1.0.0"},
            mount=lambda app: None,
        )
        assert ManifestValidator().validate(obj, "plugin")

    def test_string_kind_matches_enum(self, make_module):
        assert ManifestValidator().validate(make_module("a"), "plugin")


# ============================================================================
# Version compatibility
# ============================================================================

class TestCompatibility:

    @pytest.mark.parametrize("required", ["1.0.0", "1.9.9", "1"])
    def test_same_major_admitted(self, required):
        assert ManifestValidator("1.3.2").is_compatible(required) is True

    @pytest.mark.parametrize("required", ["2.0.0", "0.9.0"])
    def test_other_major_rejected(self, required):
        assert ManifestValidator("1.3.2").is_compatible(required) is False

    @pytest.mark.parametrize("required", ["", "x.1.0", "v1.0.0", None, 1])
    def test_unparseable_is_incompatible(self, required):
        assert ManifestValidator("1.0.0").is_compatible(required) is False

    def test_incompatible_message(self, make_module):
        module = make_module("future", requires="2.0.0")
        result = ManifestValidator("1.3.2").validate(module, ModuleKind.PLUGIN)
        assert result.error == "Incompatible Version. future requires v2.0.0, Core is v1.3.2"


# ============================================================================
# Manifest parsing
# ============================================================================

class TestManifestFromDict:

    def test_type_alias(self):
        manifest = ModuleManifest.from_dict({"type": "theme", "slug": "t", "version": "1.0.0"})
        assert manifest.kind is ModuleKind.THEME
        assert manifest.requires is None

    def test_unknown_kind_kept(self):
        manifest = ModuleManifest.from_dict({"kind": "widget", "slug": "w", "version": "1"})
        assert manifest.kind == "widget"
        assert manifest.to_dict()["kind"] == "widget"
