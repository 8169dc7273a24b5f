"""Tests for engine construction."""
from sqlalchemy.pool import StaticPool

from bookingflow.database import build_engine, normalize_database_url


class TestDatabaseUrl:

    def test_postgres_scheme_rewritten(self):
        url = normalize_database_url("postgres://user:pw@db.example.se:5432/bookings")

        assert url == "postgresql://user:pw@db.example.se:5432/bookings"

    def test_other_schemes_untouched(self):
        assert normalize_database_url("sqlite:///./bookingflow.db") == "sqlite:///./bookingflow.db"
        assert normalize_database_url("postgresql://db/bookings") == "postgresql://db/bookings"


class TestBuildEngine:

    def test_sqlite_engine_accepts_pool_override(self):
        engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)

        assert engine.url.get_backend_name() == "sqlite"
        assert isinstance(engine.pool, StaticPool)
        engine.dispose()
