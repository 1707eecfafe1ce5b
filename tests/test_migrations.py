import sqlite3

import pytest

from quoteserver.migrations import MIGRATIONS, Migration, Migrator, main

NAMES = [
    "m20240424_000001_create_quote_table",
    "m20250430_133655_create_tags_table",
    "m20250506_145225_create_author_table",
]


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


def _tables(conn):
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
    )
    return {row[0] for row in rows}


def _columns(conn, table):
    return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]


def _seed_and_migrate(conn):
    migrator = Migrator(conn)
    migrator.up(1)
    conn.executemany(
        "INSERT INTO quote (name, quote) VALUES (?, ?)",
        [("ada", "q1"), ("bob", "q2"), ("ada", "q3")],
    )
    conn.commit()
    migrator.up(1)
    conn.execute("INSERT INTO tag (tag) VALUES ('wit')")
    conn.execute("INSERT INTO quote_tag_association (quote_id, tag_id) VALUES (3, 1)")
    conn.commit()
    migrator.up()
    return migrator


def test_migrations_are_ordered_and_named(conn):
    assert all(isinstance(m, Migration) for m in MIGRATIONS)
    migrator = Migrator(conn)
    assert migrator.pending() == [m.name for m in MIGRATIONS]
    assert migrator.up() == NAMES


def test_new_database_has_everything_pending(conn):
    migrator = Migrator(conn)
    assert migrator.applied() == []
    assert migrator.pending() == NAMES


def test_up_creates_final_schema(conn):
    migrator = Migrator(conn)
    assert migrator.up() == NAMES
    assert migrator.pending() == []
    assert migrator.applied() == NAMES
    assert {"author", "quote", "tag", "quote_tag_association"} <= _tables(conn)
    assert _columns(conn, "quote") == ["id", "quote", "author_id"]
    assert _columns(conn, "quote_tag_association") == ["quote_id", "tag_id"]


def test_up_twice_applies_nothing(conn):
    migrator = Migrator(conn)
    migrator.up()
    assert migrator.up() == []


def test_up_with_steps(conn):
    migrator = Migrator(conn)
    assert migrator.up(2) == NAMES[:2]
    assert migrator.pending() == NAMES[2:]
    assert _columns(conn, "quote") == ["id", "name", "quote"]


def test_author_migration_moves_names_into_author_table(conn):
    _seed_and_migrate(conn)
    authors = {row[0] for row in conn.execute("SELECT name FROM author")}
    assert authors == {"ada", "bob"}
    rows = conn.execute(
        "SELECT q.quote, a.name FROM quote q JOIN author a ON a.id = q.author_id "
        "ORDER BY q.id"
    ).fetchall()
    assert rows == [("q1", "ada"), ("q2", "bob"), ("q3", "ada")]
    assert conn.execute(
        "SELECT quote_id, tag_id FROM quote_tag_association"
    ).fetchall() == [(3, 1)]
    assert "quote_v1" not in _tables(conn)


def test_down_restores_author_names_on_quotes(conn):
    migrator = _seed_and_migrate(conn)
    assert migrator.down() == [NAMES[2]]
    assert _columns(conn, "quote") == ["id", "name", "quote"]
    assert "author" not in _tables(conn)
    rows = conn.execute("SELECT name, quote FROM quote ORDER BY id").fetchall()
    assert rows == [("ada", "q1"), ("bob", "q2"), ("ada", "q3")]
    assert migrator.pending() == [NAMES[2]]


def test_down_all_reverts_in_reverse_order(conn):
    migrator = Migrator(conn)
    migrator.up()
    assert migrator.down(None) == list(reversed(NAMES))
    assert _tables(conn) == {"seaql_migrations"}
    assert migrator.applied() == []


def test_fresh_drops_data_and_reapplies(conn):
    migrator = _seed_and_migrate(conn)
    conn.execute("CREATE TABLE stray (x integer)")
    conn.commit()
    assert migrator.fresh() == NAMES
    assert "stray" not in _tables(conn)
    assert conn.execute("SELECT COUNT(*) FROM quote").fetchone() == (0,)
    assert migrator.applied() == NAMES


def test_down_with_unknown_version_raises(conn):
    migrator = Migrator(conn)
    conn.execute(
        "INSERT INTO seaql_migrations (version, applied_at) VALUES ('m99_unknown', 0)"
    )
    conn.commit()
    with pytest.raises(ValueError, match="m99_unknown"):
        migrator.down()


def test_main_up_and_status(tmp_path, capsys):
    db = tmp_path / "quotes.db"
    assert main(["--database-url", f"sqlite:{db}", "up"]) == 0
    with sqlite3.connect(db) as check:
        assert {"author", "quote"} <= _tables(check)
    capsys.readouterr()
    assert main(["-u", f"sqlite://{db}", "status"]) == 0
    out = capsys.readouterr().out
    assert all(f"Applied: {name}" in out for name in NAMES)
    assert "Pending" not in out


def test_main_down_reverts_one(tmp_path, capsys):
    db = tmp_path / "quotes.db"
    main(["-u", f"sqlite:{db}", "up"])
    capsys.readouterr()
    assert main(["-u", f"sqlite:{db}", "down"]) == 0
    assert f"Reverted: {NAMES[2]}" in capsys.readouterr().out
    with sqlite3.connect(db) as check:
        assert "author" not in _tables(check)


def test_main_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(SystemExit) as excinfo:
        main(["status"])
    assert excinfo.value.code == 2