"""Schema migrations for the quote database."""

from __future__ import annotations

import argparse
import os
import sqlite3
import sys
import time
from contextlib import closing
from dataclasses import dataclass

_MIGRATION_TABLE = "seaql_migrations"

_CREATE_QUOTE_TAG_ASSOCIATION = """
CREATE TABLE IF NOT EXISTS quote_tag_association (
    quote_id integer NOT NULL,
    tag_id integer NOT NULL,
    CONSTRAINT "fk-quote-tag-association-tag-id"
        FOREIGN KEY (tag_id) REFERENCES tag (id),
    CONSTRAINT "fk-quote-tag-association-quote-id"
        FOREIGN KEY (quote_id) REFERENCES quote (id),
    PRIMARY KEY (quote_id, tag_id)
)
"""

_CREATE_QUOTE_WITH_NAME = """
CREATE TABLE IF NOT EXISTS quote (
    id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
    name varchar NOT NULL,
    quote varchar NOT NULL
)
"""


@dataclass(frozen=True)
class Migration:
    """A named schema change with the statements that apply and revert it."""

    name: str
    up_statements: tuple[str, ...]
    down_statements: tuple[str, ...]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        name="m20240424_000001_create_quote_table",
        up_statements=(_CREATE_QUOTE_WITH_NAME,),
        down_statements=("DROP TABLE quote",),
    ),
    Migration(
        name="m20250430_133655_create_tags_table",
        up_statements=(
            """
            CREATE TABLE IF NOT EXISTS tag (
                id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
                tag varchar NOT NULL
            )
            """,
            _CREATE_QUOTE_TAG_ASSOCIATION,
        ),
        down_statements=("DROP TABLE tag", "DROP TABLE quote_tag_association"),
    ),
    Migration(
        name="m20250506_145225_create_author_table",
        up_statements=(
            """
            CREATE TABLE IF NOT EXISTS author (
                id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
                name varchar NOT NULL
            )
            """,
            "ALTER TABLE quote ADD COLUMN author_id integer NOT NULL DEFAULT 0",
            "INSERT INTO author (name) SELECT DISTINCT name FROM quote",
            """
            UPDATE quote
            SET author_id = (SELECT author.id FROM author WHERE author.name = quote.name)
            WHERE quote.name IN (SELECT name FROM author)
            """,
            "ALTER TABLE quote RENAME TO quote_v1",
            "ALTER TABLE quote_tag_association RENAME TO quote_tag_association_v1",
            """
            CREATE TABLE IF NOT EXISTS quote (
                id integer NOT NULL PRIMARY KEY AUTOINCREMENT,
                quote varchar NOT NULL,
                author_id integer NOT NULL,
                CONSTRAINT "fk-quote-author-id"
                    FOREIGN KEY (author_id) REFERENCES author (id)
            )
            """,
            _CREATE_QUOTE_TAG_ASSOCIATION,
            "INSERT INTO quote (author_id, quote) SELECT author_id, quote FROM quote_v1",
            """
            INSERT INTO quote_tag_association (quote_id, tag_id)
            SELECT quote_id, tag_id FROM quote_tag_association_v1
            """,
            "DROP TABLE quote_v1",
            "DROP TABLE quote_tag_association_v1",
        ),
        down_statements=(
            "ALTER TABLE quote ADD COLUMN name varchar NOT NULL DEFAULT ''",
            """
            UPDATE quote
            SET name = (SELECT author.name FROM author WHERE author.id = quote.author_id)
            """,
            "ALTER TABLE quote RENAME TO quote_v1",
            _CREATE_QUOTE_WITH_NAME,
            "INSERT INTO quote (name, quote) SELECT name, quote FROM quote_v1",
            "DROP TABLE quote_v1",
            "DROP TABLE author",
        ),
    ),
)


class Migrator:
    """Applies and reverts migrations, recording applied ones in the database."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.migrations = MIGRATIONS
        self._ensure_table()

    def _ensure_table(self) -> None:
        self.conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_MIGRATION_TABLE} "
            "(version varchar NOT NULL PRIMARY KEY, applied_at bigint NOT NULL)"
        )
        self.conn.commit()

    def _transaction(self, statements, bookkeeping: str, params: tuple) -> None:
        self.conn.commit()
        previous = self.conn.isolation_level
        self.conn.isolation_level = None
        try:
            self.conn.execute("BEGIN")
            try:
                for statement in statements:
                    self.conn.execute(statement)
                self.conn.execute(bookkeeping, params)
            except BaseException:
                self.conn.execute("ROLLBACK")
                raise
            self.conn.execute("COMMIT")
        finally:
            self.conn.isolation_level = previous

    def applied(self) -> list[str]:
        """Names of applied migrations, oldest first."""
        rows = self.conn.execute(
            f"SELECT version FROM {_MIGRATION_TABLE} ORDER BY version"
        )
        return [row[0] for row in rows]

    def pending(self) -> list[str]:
        """Names of migrations not yet applied, in the order they will run."""
        done = set(self.applied())
        return [m.name for m in self.migrations if m.name not in done]

    def up(self, steps: int | None = None) -> list[str]:
        """Apply pending migrations (all, or the first ``steps``); return their names."""
        done = set(self.applied())
        todo = [m for m in self.migrations if m.name not in done]
        if steps is not None:
            todo = todo[:steps]
        for migration in todo:
            self._transaction(
                migration.up_statements,
                f"INSERT INTO {_MIGRATION_TABLE} (version, applied_at) VALUES (?, ?)",
                (migration.name, int(time.time())),
            )
        return [m.name for m in todo]

    def down(self, steps: int | None = 1) -> list[str]:
        """Revert the latest applied migrations (``None`` means all); return their names."""
        by_name = {m.name: m for m in self.migrations}
        names = list(reversed(self.applied()))
        if steps is not None:
            names = names[:steps]
        for name in names:
            if name not in by_name:
                raise ValueError(f"migration file of version '{name}' is missing")
        for name in names:
            self._transaction(
                by_name[name].down_statements,
                f"DELETE FROM {_MIGRATION_TABLE} WHERE version = ?",
                (name,),
            )
        return names

    def fresh(self) -> list[str]:
        """Drop every table, then apply all migrations; return their names."""
        tables = [
            row[0]
            for row in self.conn.execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
            )
        ]
        for table in tables:
            self.conn.execute(f'DROP TABLE IF EXISTS "{table}"')
        self.conn.commit()
        self._ensure_table()
        return self.up()


def _database_path(url: str) -> str:
    for prefix in ("sqlite://", "sqlite:"):
        if url.startswith(prefix):
            url = url[len(prefix):]
            break
    return url.split("?", 1)[0]


def main(argv: list[str] | None = None) -> int:
    """Run migrations against the database named on the command line."""
    parser = argparse.ArgumentParser(description="Run database migrations.")
    parser.add_argument(
        "-u",
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="database URL, e.g. sqlite:quote_server.db (default: $DATABASE_URL)",
    )
    commands = parser.add_subparsers(dest="command")
    up_cmd = commands.add_parser("up", help="apply pending migrations")
    up_cmd.add_argument("-n", "--num", type=int, default=None)
    down_cmd = commands.add_parser("down", help="revert applied migrations")
    down_cmd.add_argument("-n", "--num", type=int, default=1)
    commands.add_parser("status", help="list applied and pending migrations")
    commands.add_parser("fresh", help="drop all tables and reapply all migrations")
    commands.add_parser("refresh", help="revert all migrations and reapply them")
    commands.add_parser("reset", help="revert all applied migrations")
    args = parser.parse_args(argv)

    if not args.database_url:
        parser.error("a database URL is required (--database-url or DATABASE_URL)")

    command = args.command or "up"
    with closing(sqlite3.connect(_database_path(args.database_url))) as conn:
        migrator = Migrator(conn)
        if command == "status":
            for name in migrator.applied():
                print(f"Applied: {name}")
            for name in migrator.pending():
                print(f"Pending: {name}")
            return 0
        if command == "up":
            changed = migrator.up(getattr(args, "num", None))
            verb = "Applied"
        elif command == "down":
            changed = migrator.down(args.num)
            verb = "Reverted"
        elif command == "fresh":
            changed = migrator.fresh()
            verb = "Applied"
        elif command == "reset":
            changed = migrator.down(None)
            verb = "Reverted"
        else:
            for name in migrator.down(None):
                print(f"Reverted: {name}")
            changed = migrator.up()
            verb = "Applied"
        for name in changed:
            print(f"{verb}: {name}")
        if not changed:
            print("No migrations to run")
    return 0


if __name__ == "__main__":
    sys.exit(main())