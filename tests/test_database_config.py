from recall.sm2 import database


def test_default_sqlite_file_lives_in_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("TEST_MODE", raising=False)

    assert database.get_database_url() == f"sqlite:///{tmp_path / 'logs' / 'learning.db'}"
    assert (tmp_path / "logs").is_dir()


def test_test_mode_swaps_database_name(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("TEST_MODE", "true")

    assert database.get_database_url().endswith("test_learning.db")

    monkeypatch.setenv("DATABASE_URL", "postgresql://user@host/learning_db")
    assert database.get_database_url() == "postgresql://user@host/test_learning_db"
