# storage/db.py
import sqlite3
import os
from pathlib import Path


_DEFAULT_DB_PATH = Path.home() / ".folio" / "folio.db"

# El libro es un singleton: siempre book_id = 1.
SINGLETON_BOOK_ID = 1

_SCHEMA = """
CREATE TABLE IF NOT EXISTS book (
    id          INTEGER PRIMARY KEY CHECK (id = 1),
    title       TEXT    NOT NULL DEFAULT ''
);

INSERT OR IGNORE INTO book (id, title) VALUES (1, '');

CREATE TABLE IF NOT EXISTS revisions (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id     INTEGER NOT NULL DEFAULT 1,
    title       TEXT    NOT NULL,
    created_at  TEXT    NOT NULL,
    FOREIGN KEY (book_id) REFERENCES book(id)
);

CREATE TABLE IF NOT EXISTS blocks (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    revision_id  INTEGER NOT NULL,
    sequence     INTEGER NOT NULL CHECK (sequence >= 0),
    type_id      INTEGER NOT NULL,
    content      TEXT    NOT NULL,
    fingerprint  TEXT    NOT NULL,
    FOREIGN KEY (revision_id) REFERENCES revisions(id),
    UNIQUE (revision_id, sequence)
);

CREATE INDEX IF NOT EXISTS idx_blocks_fingerprint
    ON blocks (revision_id, fingerprint);

CREATE TABLE IF NOT EXISTS live_revision (
    book_id      INTEGER PRIMARY KEY,
    revision_id  INTEGER NOT NULL,
    version      INTEGER NOT NULL DEFAULT 1,
    updated_at   TEXT    NOT NULL,
    FOREIGN KEY (book_id)     REFERENCES book(id),
    FOREIGN KEY (revision_id) REFERENCES revisions(id)
);

CREATE TABLE IF NOT EXISTS readers (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT    NOT NULL,
    created_at  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS reader_positions (
    reader_id    INTEGER PRIMARY KEY,
    revision_id  INTEGER NOT NULL,
    block_id     INTEGER NOT NULL,
    sequence     INTEGER NOT NULL,
    notice       TEXT,
    updated_at   TEXT    NOT NULL,
    FOREIGN KEY (reader_id)   REFERENCES readers(id),
    FOREIGN KEY (revision_id) REFERENCES revisions(id),
    FOREIGN KEY (block_id)    REFERENCES blocks(id)
);

CREATE TABLE IF NOT EXISTS comments (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    reader_id   INTEGER NOT NULL,
    block_id    INTEGER NOT NULL,
    content     TEXT    NOT NULL,
    created_at  TEXT    NOT NULL,
    FOREIGN KEY (reader_id) REFERENCES readers(id),
    FOREIGN KEY (block_id)  REFERENCES blocks(id)
);
"""


def resolve_db_path(db_path: str | None = None) -> str:
    return db_path or os.environ.get("FOLIO_DB_PATH") or str(_DEFAULT_DB_PATH)


def get_connection(db_path: str | None = None, timeout: float = 5.0) -> sqlite3.Connection:
    """
    Abre y configura la conexión a SQLite.
    Siempre devuelve rows como dicts (row_factory).
    Activa foreign keys: SQLite las tiene desactivadas por defecto.
    timeout: segundos que una escritura espera un lock antes de fallar.
    """
    path = resolve_db_path(db_path)

    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, timeout=timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")   # lectores concurrentes mientras se importa
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Crea las tablas si no existen. Idempotente."""
    with conn:
        conn.executescript(_SCHEMA)
