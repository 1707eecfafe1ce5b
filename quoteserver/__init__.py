"""Quote storage in SQLite, its schema migrations, and a web server that lists quotes page by page."""

__version__ = "0.1.0"