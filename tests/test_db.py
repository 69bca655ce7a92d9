from pawcare.core.db import to_async_url, to_sync_url


class TestDatabaseUrls:

    def test_postgres_gets_asyncpg_without_psycopg_params(self):
        url = to_async_url("postgresql://u:p@db.example.com/pawcare?sslmode=require&application_name=api")
        assert url == "postgresql+asyncpg://u:p@db.example.com/pawcare?application_name=api"

    def test_other_schemes_are_left_alone(self):
        assert to_async_url("sqlite+aiosqlite:///./dev.db") == "sqlite+aiosqlite:///./dev.db"

    def test_migrations_use_blocking_drivers(self):
        assert to_sync_url("sqlite+aiosqlite:///:memory:") == "sqlite:///:memory:"
        assert to_sync_url("postgresql+asyncpg://u:p@db/pawcare") == "postgresql://u:p@db/pawcare"

    def test_blocking_urls_pass_through(self):
        assert to_sync_url("postgresql://u:p@db/pawcare") == "postgresql://u:p@db/pawcare"
        assert to_sync_url("postgresql+psycopg2://u:p@db/pawcare") == "postgresql+psycopg2://u:p@db/pawcare"
