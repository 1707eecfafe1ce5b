"""Web server that lists stored quotes page by page."""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
import sys
from collections.abc import Iterable
from contextlib import closing
from html import escape

from flask import Flask, Response, abort, redirect, request

from quoteserver.data_access import DataAccess, DatabaseError, connect
from quoteserver.models import QuoteCreateDTO, QuoteDTO

HOST = "127.0.0.1"
PORT = 3000
INIT_FILE = "./static/assets/quotes.json"

_U64_MAX = 2**64 - 1
_DIGITS = re.compile(r"[0-9]+")


def read_quotes_from_file(file_path: str | os.PathLike[str]) -> list[QuoteCreateDTO]:
    """Load a JSON array of quotes to create; raise ValueError if it is malformed."""
    with open(file_path, encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of quotes")
    return [QuoteCreateDTO.from_dict(entry) for entry in data]


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        f"<head><meta charset=\"utf-8\"><title>{escape(title)}</title></head>\n"
        f"<body>\n{body}\n</body>\n"
        "</html>\n"
    )


def render_quotes(quotes: Iterable[QuoteDTO]) -> str:
    """Render a list of quotes as an HTML page."""
    items = []
    for quote in quotes:
        tags = "".join(f'<li class="tag">{escape(t.tag)}</li>' for t in quote.related_tags)
        items.append(
            '<li class="quote">'
            f"<blockquote>{escape(quote.quote)}</blockquote>"
            f'<p class="author">{escape(quote.author.name)}</p>'
            f'<ul class="tags">{tags}</ul>'
            "</li>"
        )
    listing = f'<ul class="quotes">\n{chr(10).join(items)}\n</ul>' if items else "<p>No quotes.</p>"
    return _page("Quotes", f"<h1>Quotes</h1>\n{listing}")


def render_error() -> str:
    """Render the page shown when a request fails."""
    return _page("Error", "<h1>Something went wrong</h1>")


def _query_u64(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None:
        return None
    if not _DIGITS.fullmatch(raw) or int(raw) > _U64_MAX:
        abort(
            Response(
                f"Failed to deserialize query string: {name}: invalid digit found in string",
                status=400,
                mimetype="text/plain",
            )
        )
    return int(raw)


def create_app(db_path: str | os.PathLike[str] = "quote_server.db") -> Flask:
    """Build the web application over an existing database file."""
    connect(db_path).close()
    app = Flask(__name__)
    app.config["DB_PATH"] = os.fspath(db_path)

    @app.get("/")
    def root():
        return redirect("/quotes", code=303)

    @app.get("/quotes")
    def quotes():
        page = _query_u64("page")
        page_size = _query_u64("page_size")
        try:
            with closing(connect(app.config["DB_PATH"])) as conn:
                found, _ = DataAccess(conn).get_quotes_in_page(
                    1 if page is None else page,
                    10 if page_size is None else page_size,
                )
            return render_quotes(found)
        except (DatabaseError, ValueError, OverflowError):
            logging.getLogger(__name__).exception("failed to list quotes")
            return Response(render_error(), status=500, mimetype="text/html")

    return app


def main(argv: list[str] | None = None) -> int:
    """Optionally seed the database, then serve quotes over HTTP."""
    parser = argparse.ArgumentParser(description="Serve quotes from a database.")
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "-d", "--db-path", default="quote_server.db", help="the path to the database file"
    )
    parser.add_argument(
        "-i", "--init", action="store_true", help="whether to initialize the database"
    )
    args = parser.parse_args(argv)

    try:
        with closing(connect(args.db_path)) as conn:
            if args.init:
                access = DataAccess(conn)
                for quote in read_quotes_from_file(INIT_FILE):
                    dto = access.create_quote(quote)
                    print(f"Created quote: {dto!r}")
        logging.basicConfig(level=logging.INFO)
        app = create_app(args.db_path)
    except (DatabaseError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Listening on {HOST}:{PORT}")
    app.run(host=HOST, port=PORT)
    return 0


if __name__ == "__main__":
    sys.exit(main())