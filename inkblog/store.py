"""Storage primitives: application errors, user lookup and the SQLite database."""

from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Protocol

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_PREFIX = re.compile(r"[A-Za-z0-9_]*")


def _adapt_datetime(value: datetime) -> str:
    return value.strftime(_TIME_FORMAT)


def _convert_datetime(raw: bytes) -> datetime:
    text = raw.decode()
    try:
        return datetime.strptime(text, _TIME_FORMAT)
    except ValueError:
        return datetime.fromisoformat(text)


# Columns declared as INKTIME (or aliased as "name [INKTIME]") come back as datetimes.
sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("INKTIME", _convert_datetime)


class AppError(Exception):
    """Base error of the blog; ``status`` is the matching HTTP status code."""

    status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    """The requested record does not exist."""

    status = 404


class ConflictError(AppError):
    """The operation clashes with the current state."""

    status = 409


class ForbiddenError(AppError):
    """The caller may not perform the operation."""

    status = 403


class BadRequestError(AppError):
    """The request is malformed or violates a rule."""

    status = 400


@dataclass(frozen=True)
class UserProfile:
    """Public details of a user shown next to articles and comments."""

    id: int
    username: str
    avatar: str = ""


class UserDirectory(Protocol):
    """Anything that can look a user up by id."""

    def get(self, user_id: int) -> UserProfile:
        """Return the user, raising NotFoundError when there is none."""
        ...


class InMemoryUserDirectory:
    """A user directory kept in a dictionary."""

    def __init__(self) -> None:
        self._users: dict[int, UserProfile] = {}

    def add(self, user_id: int, username: str, avatar: str = "") -> UserProfile:
        profile = UserProfile(user_id, username, avatar)
        self._users[user_id] = profile
        return profile

    def get(self, user_id: int) -> UserProfile:
        try:
            return self._users[user_id]
        except KeyError:
            raise NotFoundError("用户不存在") from None


_SCHEMA = (
    """CREATE TABLE IF NOT EXISTS {article} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        summary TEXT NOT NULL DEFAULT '',
        author_id INTEGER NOT NULL,
        category_id INTEGER,
        cover TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'draft',
        view_count INTEGER NOT NULL DEFAULT 0,
        like_count INTEGER NOT NULL DEFAULT 0,
        comment_count INTEGER NOT NULL DEFAULT 0,
        favorite_count INTEGER NOT NULL DEFAULT 0,
        created_at INKTIME,
        updated_at INKTIME
    )""",
    "CREATE INDEX IF NOT EXISTS idx_{article}_author_id ON {article} (author_id)",
    "CREATE INDEX IF NOT EXISTS idx_{article}_category_id ON {article} (category_id)",
    "CREATE INDEX IF NOT EXISTS idx_{article}_created_at ON {article} (created_at)",
    """CREATE TABLE IF NOT EXISTS {category} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        description TEXT NOT NULL DEFAULT '',
        created_at INKTIME,
        updated_at INKTIME
    )""",
    """CREATE TABLE IF NOT EXISTS {tag} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        created_at INKTIME,
        updated_at INKTIME
    )""",
    """CREATE TABLE IF NOT EXISTS {article_tag} (
        article_id INTEGER NOT NULL,
        tag_id INTEGER NOT NULL,
        created_at INKTIME,
        PRIMARY KEY (article_id, tag_id)
    )""",
    """CREATE TABLE IF NOT EXISTS {user_interaction} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        article_id INTEGER NOT NULL,
        type TEXT NOT NULL,
        created_at INKTIME
    )""",
    """CREATE TABLE IF NOT EXISTS {comment} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        content TEXT NOT NULL,
        author_id INTEGER NOT NULL,
        article_id INTEGER NOT NULL,
        parent_id INTEGER,
        root_id INTEGER,
        level INTEGER NOT NULL DEFAULT 1,
        status INTEGER NOT NULL DEFAULT 0,
        reviewed_at INKTIME,
        reviewer_id INTEGER,
        review_remark TEXT NOT NULL DEFAULT '',
        created_at INKTIME
    )""",
    "CREATE INDEX IF NOT EXISTS idx_{comment}_article_id ON {comment} (article_id)",
    "CREATE INDEX IF NOT EXISTS idx_{comment}_parent_id ON {comment} (parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_{comment}_root_id ON {comment} (root_id)",
    # Accounts live in another part of the application; the blog only needs
    # their names for filtering articles by author.
    """CREATE TABLE IF NOT EXISTS {user} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        avatar TEXT NOT NULL DEFAULT ''
    )""",
)

_TABLES = ("article", "category", "tag", "article_tag", "user_interaction", "comment", "user")


class Database:
    """A SQLite database holding the blog and comment tables."""

    def __init__(
        self,
        path: str = ":memory:",
        table_prefix: str = "",
        auto_migrate: bool = True,
    ) -> None:
        if not _PREFIX.fullmatch(table_prefix):
            raise ValueError(f"invalid table prefix: {table_prefix!r}")
        self.path = str(path)
        self.table_prefix = table_prefix
        self.connection = sqlite3.connect(
            self.path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            isolation_level=None,
        )
        self.connection.row_factory = sqlite3.Row
        self._depth = 0
        if auto_migrate:
            self.migrate()

    def table(self, name: str) -> str:
        """Return the full table name for a model's base name."""
        full = f"{self.table_prefix}{name}"
        if not _IDENTIFIER.fullmatch(full):
            raise ValueError(f"invalid table name: {name!r}")
        return full

    def migrate(self) -> None:
        """Create every table and index that does not exist yet."""
        names = {name: self.table(name) for name in _TABLES}
        with self.transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement.format(**names))

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically; nested blocks become savepoints."""
        if self._depth == 0:
            begin, commit, rollback = ["BEGIN"], ["COMMIT"], ["ROLLBACK"]
        else:
            savepoint = f"inkblog_sp_{self._depth}"
            begin = [f"SAVEPOINT {savepoint}"]
            commit = [f"RELEASE SAVEPOINT {savepoint}"]
            rollback = [f"ROLLBACK TO SAVEPOINT {savepoint}", f"RELEASE SAVEPOINT {savepoint}"]
        for statement in begin:
            self.connection.execute(statement)
        self._depth += 1
        try:
            yield self.connection
        except BaseException:
            self._depth -= 1
            for statement in rollback:
                self.connection.execute(statement)
            raise
        self._depth -= 1
        for statement in commit:
            self.connection.execute(statement)

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()