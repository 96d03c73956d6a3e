import logging
import sqlite3
from typing import Optional

from librarydesk.config import DEFAULT_ADMIN_PASSWORD, settings

logger = logging.getLogger(__name__)

# Default database file. Callers may pass their own path to every helper
# (tests use one file per test under tmp_path).
DATABASE_FILE = settings.database_file


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database with dict-like rows."""
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_file: Optional[str] = None) -> None:
    """Create the required tables if they do not exist yet."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS admin (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE,
                password TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT,
                department TEXT,
                phone TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT,
                author TEXT,
                quantity INTEGER,
                available INTEGER
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS issue (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id INTEGER,
                book_id INTEGER,
                issue_date TEXT,
                return_date TEXT,
                fine INTEGER DEFAULT 0,
                status TEXT DEFAULT 'issued',
                FOREIGN KEY (student_id) REFERENCES students(id),
                FOREIGN KEY (book_id) REFERENCES books(id)
            )
        """)

        # Lookups used by the ledger queries
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_issue_status ON issue(status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_issue_book_status ON issue(book_id, status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_issue_student ON issue(student_id)")
        conn.commit()
    finally:
        conn.close()


def seed_admin(db_file: Optional[str] = None) -> bool:
    """Insert the configured admin account when the admin table is empty.

    Returns True if an account was created.
    """
    from librarydesk.auth import hash_password

    conn = get_db_connection(db_file)
    try:
        count = conn.execute("SELECT COUNT(*) FROM admin").fetchone()[0]
        if count > 0:
            return False
        conn.execute(
            "INSERT INTO admin (username, password) VALUES (?, ?)",
            (settings.admin_username, hash_password(settings.admin_password)),
        )
        conn.commit()
    finally:
        conn.close()

    if settings.admin_password == DEFAULT_ADMIN_PASSWORD:
        logger.warning(
            f"Seeded admin '{settings.admin_username}' with the default password; "
            "set ADMIN_PASSWORD before exposing the server."
        )
    else:
        logger.info(f"Seeded admin '{settings.admin_username}'")
    return True


def initialize_database(db_file: Optional[str] = None) -> None:
    """Create tables if needed and make sure an admin account exists."""
    create_tables(db_file)
    seed_admin(db_file)
