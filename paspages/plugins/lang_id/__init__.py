"""
Indonesian language pack.
"""

from ...manifest import ModuleKind, ModuleManifest

manifest = ModuleManifest(
    kind=ModuleKind.PLUGIN,
    slug="lang-id",
    name="Indonesian Language Pack",
    version="1.0.0",
    requires="1.0.0",
    author="PasPages Community",
)

TRANSLATIONS = {
    "welcome": "Selamat Datang di PasPages Core",
    "admin_title": "Panel Admin",
    "status_operational": "BERJALAN",
    "modules_active": "Modul Aktif",
    "db_connected": "Database Terhubung",
    "settings_saved": "Pengaturan Berhasil Disimpan",
    "migration_run": "Jalankan Migrasi Database",
    "system_health": "Kesehatan Sistem",
    "quick_actions": "Aksi Cepat",
}


def mount(app) -> None:
    app.registry.register_translation("id", TRANSLATIONS)
    app.registry.log("Indonesian language loaded.")
