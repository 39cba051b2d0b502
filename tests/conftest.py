"""
Shared test fixtures for the PasPages test suite.

Provides:
- config: in-memory database, fixed master key and secret, tmp upload dir
- registry: a fresh Registry per test
- db: a connected in-memory Database, closed after the test
- make_module: factory for in-test modules
- app / client: a loaded application with the built-in modules and an
  in-process TestClient, shut down after the test
"""

from typing import Callable, Optional

import pytest
import pytest_asyncio

from paspages.app import create_app
from paspages.config import CoreConfig
from paspages.db import Database
from paspages.manifest import Module, ModuleKind, ModuleManifest
from paspages.registry import Registry
from paspages.testing import TestClient

MASTER_KEY = "test-master-key"


@pytest.fixture
def config(tmp_path) -> CoreConfig:
    return CoreConfig(
        database_url="sqlite:///:memory:",
        master_key=MASTER_KEY,
        app_secret="test-secret-keep-it-stable",
        storage_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest_asyncio.fixture
async def db():
    database = Database("sqlite:///:memory:")
    await database.connect()
    yield database
    await database.disconnect()


@pytest.fixture
def make_module() -> Callable[..., Module]:
    """Build a Module without importing anything."""

    def factory(
        slug: str,
        kind: ModuleKind = ModuleKind.PLUGIN,
        version: str = "1.0.0",
        requires: Optional[str] = "1.0.0",
        mount: Optional[Callable] = None,
    ) -> Module:
        manifest = ModuleManifest(
            kind=kind, slug=slug, name=slug.title(), version=version, requires=requires,
        )
        return Module(manifest=manifest, mount=mount or (lambda app: None), source=f"test:{slug}")

    return factory


@pytest_asyncio.fixture
async def app(config):
    """Application with every built-in module mounted."""
    application = create_app(config)
    yield application
    await application.shutdown()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
