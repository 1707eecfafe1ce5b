"""Queries and inserts over the quote database."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from quoteserver.models import (
    Author,
    AuthorDTO,
    Quote,
    QuoteCreateDTO,
    QuoteDTO,
    QuoteTagAssociation,
    Tag,
    TagDTO,
)

_SQL_INT_MAX = 2**63 - 1


class DatabaseError(Exception):
    """Raised when the database cannot be opened or a statement fails."""


def connect(db_path: str | os.PathLike[str]) -> sqlite3.Connection:
    """Open an existing SQLite database file (or ``:memory:``) with foreign keys on."""
    path = os.fspath(db_path)
    for prefix in ("sqlite://", "sqlite:"):
        if path.startswith(prefix):
            path = path[len(prefix):]
            break
    if path != ":memory:" and not os.path.isfile(path):
        raise DatabaseError(f"unable to open database file: {path}")
    try:
        conn = sqlite3.connect(path)
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc
    return conn


class DataAccess:
    """Reads and writes authors, quotes and tags through one connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            if self.conn.in_transaction:
                self.conn.rollback()
            raise DatabaseError(str(exc)) from exc

    def _insert(self, sql: str, params: tuple) -> int:
        with self._guard():
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
            return cursor.lastrowid

    # Authors

    def get_or_create_author(self, author_name: str) -> AuthorDTO:
        """Find the author by lower-cased name, creating it if absent."""
        name = author_name.lower()
        with self._guard():
            row = self.conn.execute(
                "SELECT id, name FROM author WHERE name = ?", (name,)
            ).fetchone()
        if row is not None:
            return AuthorDTO.from_model(Author(*row))
        author_id = self._insert("INSERT INTO author (name) VALUES (?)", (name,))
        return AuthorDTO.from_model(Author(id=author_id, name=name))

    # Quotes

    def create_quote(self, quote: QuoteCreateDTO) -> QuoteDTO:
        """Store a quote, its author and its tags; return the stored quote."""
        author = self.get_or_create_author(quote.author_name)
        quote_id = self._insert(
            "INSERT INTO quote (quote, author_id) VALUES (?, ?)",
            (quote.quote, author.id),
        )
        model = Quote(id=quote_id, quote=quote.quote, author_id=author.id)
        related: list[TagDTO] = []
        for tag in quote.related_tags:
            tag_dto = self.get_tag_or_create_tag(tag.tag)
            self.create_quote_tag_association(model, tag_dto)
            related.append(tag_dto)
        return QuoteDTO(id=model.id, quote=model.quote, related_tags=related, author=author)

    def get_quote(self, quote_id: int) -> Quote | None:
        """Return the quote with this id, or None."""
        with self._guard():
            row = self.conn.execute(
                "SELECT id, quote, author_id FROM quote WHERE id = ?", (quote_id,)
            ).fetchone()
        return Quote(*row) if row is not None else None

    def _with_tags_and_author(self, quote: Quote) -> QuoteDTO:
        with self._guard():
            tag_rows = self.conn.execute(
                "SELECT tag.id, tag.tag FROM tag "
                "JOIN quote_tag_association AS qta ON qta.tag_id = tag.id "
                "WHERE qta.quote_id = ? ORDER BY tag.id",
                (quote.id,),
            ).fetchall()
            author_row = self.conn.execute(
                "SELECT id, name FROM author WHERE id = ?", (quote.author_id,)
            ).fetchone()
        if author_row is None:
            raise DatabaseError(f"quote {quote.id} has no author")
        return QuoteDTO(
            id=quote.id,
            quote=quote.quote,
            related_tags=[TagDTO.from_model(Tag(*row)) for row in tag_rows],
            author=AuthorDTO.from_model(Author(*author_row)),
        )

    def get_quotes_in_page(self, page: int, page_size: int) -> tuple[list[QuoteDTO], int]:
        """Return one page of quotes ordered by author name, and the number of pages.

        Pages are numbered from 1.
        """
        if page < 1:
            raise ValueError("page numbers start at 1")
        if page_size < 1:
            raise ValueError("page size must be at least 1")
        joined = "FROM quote LEFT JOIN author ON quote.author_id = author.id"
        with self._guard():
            (count,) = self.conn.execute(f"SELECT COUNT(*) {joined}").fetchone()
        total = -(-count // page_size)
        offset = (page - 1) * page_size
        if offset > _SQL_INT_MAX:
            return [], total
        with self._guard():
            rows = self.conn.execute(
                f"SELECT quote.id, quote.quote, quote.author_id {joined} "
                "ORDER BY author.name ASC, quote.id ASC LIMIT ? OFFSET ?",
                (min(page_size, _SQL_INT_MAX), offset),
            ).fetchall()
        return [self._with_tags_and_author(Quote(*row)) for row in rows], total

    # Tags

    def get_tag_or_create_tag(self, tag: str) -> TagDTO:
        """Return the first tag containing the lower-cased text, creating it if none does."""
        tag_lower = tag.lower()
        found = self.get_tags(tag_lower)
        if found:
            return TagDTO.from_model(found[0])
        return TagDTO.from_model(self.create_tag(tag_lower))

    def get_tags(self, tag: str) -> list[Tag]:
        """Return every tag whose text contains ``tag``."""
        with self._guard():
            rows = self.conn.execute(
                "SELECT id, tag FROM tag WHERE tag LIKE ? ORDER BY id", (f"%{tag}%",)
            ).fetchall()
        return [Tag(*row) for row in rows]

    def create_tag(self, tag: str) -> Tag:
        """Insert a tag exactly as given."""
        tag_id = self._insert("INSERT INTO tag (tag) VALUES (?)", (tag,))
        return Tag(id=tag_id, tag=tag)

    # Quote-tag links

    def create_quote_tag_association(self, quote: Quote, tag: TagDTO) -> QuoteTagAssociation:
        """Link a quote to a tag."""
        self._insert(
            "INSERT INTO quote_tag_association (quote_id, tag_id) VALUES (?, ?)",
            (quote.id, tag.id),
        )
        return QuoteTagAssociation(quote_id=quote.id, tag_id=tag.id)