"""
Recordbook Backend: Configuration Tests
========================================

What:  Settings validation and the engine factory.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from recordbook.config import Settings
from recordbook.database import create_store_engine


class TestSettings:

    def test_log_level_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            Settings(log_level="verbose")

    def test_default_accounts(self):
        assert Settings().login_accounts == {"demo1": "1234", "demo2": "1234"}

    def test_accounts_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOGIN_ACCOUNTS", '{"alice": "secret"}')
        assert Settings().login_accounts == {"alice": "secret"}

    def test_cors_headers(self):
        headers = Settings().cors_headers
        assert headers["Access-Control-Allow-Origin"] == "*"
        assert headers["Access-Control-Allow-Methods"] == "GET, POST, DELETE, OPTIONS"
        assert headers["Access-Control-Allow-Headers"] == "Content-Type"

    def test_missing_database_fails_production_check(self):
        with pytest.raises(ValueError, match="DATABASE_URL"):
            Settings(database_url="").validate_required_for_production()


class TestCreateStoreEngine:

    def test_empty_url_leaves_store_unbound(self):
        assert create_store_engine("") is None

    @pytest.mark.asyncio
    async def test_sqlite_engine(self, database_url):
        engine = create_store_engine(database_url)
        try:
            assert engine.url.get_backend_name() == "sqlite"
        finally:
            await engine.dispose()
