"""
Shared fixtures.
"""

import pytest

from tests.helpers import FakeClock
from xlchat import config
from xlchat.session import SessionHandle


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def handle():
    return SessionHandle(font_file_id="file_font", assistant_id="asst_1",
                         excel_file_id="file_excel", thread_id="thread_1")


@pytest.fixture
def settings():
    return config.Settings(endpoint="https://example.openai.azure.com", api_key="k",
                           api_version="2024-05-01-preview", deployment="gpt-4o")


@pytest.fixture(autouse=True)
def block_dotenv(monkeypatch):
    """Keep a developer's .env out of the tests."""
    monkeypatch.setattr(config, "load_dotenv", lambda *_a, **_kw: False)


@pytest.fixture
def azure_env(monkeypatch):
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com/")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "secret")
    monkeypatch.setenv("DEPLOYMENT_NAME", "gpt-4o")
    monkeypatch.delenv("API_VERSION", raising=False)
