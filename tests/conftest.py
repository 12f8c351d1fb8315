"""
Shared fixtures: an isolated app per test with its own SQLite file and upload
directory, plus a fake Twilio client.
"""

from pathlib import Path
from types import SimpleNamespace
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from cocktail_menu.core.config import Settings
from cocktail_menu.main import create_app

ADMIN_PASSWORD = "letmein"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256

TWILIO_SETTINGS = {
    "twilio_account_sid": "AC00000000000000000000000000000000",
    "twilio_auth_token": "token",
    "twilio_whatsapp_from": "+14155238886",
    "twilio_whatsapp_to": "+40712345678",
}


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "data_dir": tmp_path / "data",
        "upload_dir": tmp_path / "uploads",
        "database_url": None,
        "admin_password": ADMIN_PASSWORD,
        "session_secret": "test-secret",
        "public_base_url": "",
        "whatsapp_number": "",
        "twilio_account_sid": "",
        "twilio_auth_token": "",
        "twilio_whatsapp_from": "",
        "twilio_whatsapp_to": "",
        "require_instructions": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeMessages:
    """Stands in for ``client.messages`` of the Twilio SDK."""

    def __init__(self, error: Optional[Exception] = None, sid: str = "SM0001"):
        self.error = error
        self.sid = sid
        self.sent: list[dict[str, str]] = []

    async def create_async(self, body: str, from_: str, to: str):
        self.sent.append({"body": body, "from_": from_, "to": to})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(sid=self.sid)


class FakeTwilioClient:
    def __init__(self, error: Optional[Exception] = None, sid: str = "SM0001"):
        self.messages = FakeMessages(error=error, sid=sid)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def upload_dir(settings) -> Path:
    return Path(settings.upload_dir)


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    login(client)
    return client


# =============================================================================
# HELPERS
# =============================================================================

def login(client: TestClient, password: str = ADMIN_PASSWORD):
    return client.post("/admin/login", data={"password": password}, follow_redirects=False)


def create_cocktail(client: TestClient, files: Optional[dict] = None, **fields: str):
    data = {"name": "Mojito", "ingredients": "rum, mint, lime"}
    data.update(fields)
    return client.post("/admin/cocktails", data=data, files=files, follow_redirects=False)


def query(client: TestClient, sql: str, params: Optional[dict] = None) -> list[dict]:
    """Run a query on the app's event loop."""
    return client.portal.call(client.app.state.db.query_many, sql, params)


def cocktail_id_by_name(client: TestClient, name: str) -> int:
    rows = query(client, "SELECT id FROM cocktails WHERE name = :name", {"name": name})
    assert rows, f"cocktail {name!r} not found"
    return rows[0]["id"]


def uploaded_files(upload_dir: Path) -> list[str]:
    if not upload_dir.exists():
        return []
    return sorted(p.name for p in upload_dir.iterdir() if p.is_file())
