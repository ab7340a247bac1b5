from sqlalchemy import text

from sems_cli.db.config import (
    DEFAULT_DATABASE_URL,
    DatabaseConfig,
    get_engine,
    load_database_config,
    session_scope,
)


class TestLoadDatabaseConfig:
    def test_reads_properties_file(self, tmp_path, monkeypatch):
        for name in ("SEMS_DATABASE_URL", "SEMS_DATABASE_USERNAME", "SEMS_DATABASE_PASSWORD"):
            monkeypatch.delenv(name, raising=False)
        props = tmp_path / "database.properties"
        props.write_text(
            "url=mysql+pymysql://localhost:3306/sems_db\nusername=sems\npassword=secret\n"
        )

        config = load_database_config(str(props))

        assert config.url == "mysql+pymysql://localhost:3306/sems_db"
        assert config.username == "sems"
        assert config.password == "secret"

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        props = tmp_path / "database.properties"
        props.write_text("url=sqlite:///from-file.db\n")
        monkeypatch.setenv("SEMS_DATABASE_URL", "sqlite:///from-env.db")

        assert load_database_config(str(props)).url == "sqlite:///from-env.db"

    def test_defaults_without_configuration(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SEMS_DATABASE_URL", raising=False)
        monkeypatch.delenv("SEMS_DATABASE_USERNAME", raising=False)
        monkeypatch.delenv("SEMS_DATABASE_PASSWORD", raising=False)

        config = load_database_config(str(tmp_path / "missing.properties"))

        assert config.url == DEFAULT_DATABASE_URL
        assert config.username is None
        assert config.password is None


class TestEngine:
    def test_sqlite_foreign_keys_enabled(self, database_url):
        engine = get_engine(DatabaseConfig(url=database_url))
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        engine.dispose()

    def test_session_scope_releases_on_error(self, engine):
        try:
            with session_scope(engine) as db:
                db.execute(text("SELECT 1"))
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert engine.pool.checkedout() == 0
