# quoteserver

A small web server that keeps a collection of quotes in an SQLite database
and serves them as paged HTML. Every quote has one author and any number of
tags. Author names and tags are stored in lower case. An author whose
lower-cased name already exists is reused; a tag is reused when an existing
tag contains the given text, otherwise a new one is created.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Preparing the database

The schema is built by a sequence of migrations, run with
`quoteserver-migrate`. The database is given with `-u` / `--database-url`
(for example `sqlite:quote_server.db` or just a file path), or through the
`DATABASE_URL` environment variable. The file is created if it does not
exist.

```
quoteserver-migrate -u sqlite:quote_server.db up
```

Commands:

- `up [-n N]` — apply pending migrations (all, or the first `N`). This is the
  default when no command is given.
- `down [-n N]` — revert the latest `N` applied migrations (default 1).
- `status` — list applied and pending migrations.
- `fresh` — drop every table, then apply all migrations.
- `refresh` — revert all migrations, then apply them again.
- `reset` — revert all applied migrations.

Applied migrations are recorded in a `seaql_migrations` table.

## Running the server

```
quoteserver --db-path quote_server.db
```

Options:

- `-d`, `--db-path` — path to the SQLite database file (default
  `quote_server.db`). The file must already exist; otherwise the command
  prints an error and exits with status 1.
- `-i`, `--init` — before serving, load the quotes from
  `./static/assets/quotes.json` into the database, printing each created
  quote.
- `--version` — print the version and exit.

The server listens on `127.0.0.1:3000`.

### Routes

- `GET /` redirects (303) to `/quotes`.
- `GET /quotes` shows a page of quotes ordered by author name, then by quote
  id. The query parameters `page` (default 1) and `page_size` (default 10)
  choose the page; pages are numbered from 1. A parameter that is not a
  non-negative integer gives a plain-text 400 response. If the database
  cannot be read, or `page` or `page_size` is 0, an error page is returned
  with status 500.

## Seed file format

The file read by `--init` is a JSON list of quotes:

```json
[
  {
    "quote": "Simplicity is prerequisite for reliability.",
    "author_name": "Edsger W. Dijkstra",
    "related_tags": [{"tag": "simplicity"}, {"tag": "software"}]
  }
]
```

A missing or mistyped field stops the command with an error.

## Using it as a library

- `quoteserver.models` — row classes (`Author`, `Quote`, `Tag`,
  `QuoteTagAssociation`) and transfer objects (`AuthorDTO`, `TagDTO`,
  `TagCreateDTO`, `QuoteCreateDTO`, `QuoteDTO`).
- `quoteserver.data_access` — `connect()` opens an existing database file
  (or `:memory:`); `DataAccess` creates and reads authors, quotes and tags;
  failures raise `DatabaseError`.
- `quoteserver.migrations` — `Migrator` applies and reverts the schema
  migrations on an `sqlite3` connection.
- `quoteserver.app` — `create_app()` builds the Flask application;
  `render_quotes()` and `render_error()` produce the HTML pages.

```python
from quoteserver.data_access import DataAccess, connect
from quoteserver.models import QuoteCreateDTO

access = DataAccess(connect("quote_server.db"))
created = access.create_quote(QuoteCreateDTO.from_dict({
    "quote": "Simplicity is prerequisite for reliability.",
    "author_name": "Edsger W. Dijkstra",
    "related_tags": [{"tag": "simplicity"}],
}))
quotes, total_pages = access.get_quotes_in_page(1, 10)
```

## What it does not do

The web server only lists quotes. It has no routes for adding, editing or
deleting quotes, authors or tags; new quotes are added through the seed file
with `--init` or through `DataAccess`. Only SQLite databases are supported.