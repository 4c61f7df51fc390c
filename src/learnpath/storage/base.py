"""Shared SQLite plumbing for the stores."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

DEFAULT_DB_PATH = Path.home() / ".learnpath" / "learnpath.db"

T = TypeVar("T")


class SQLiteStore:
    """One table per subclass, WAL mode, a fresh connection per operation.

    Public methods are coroutines; the blocking sqlite work runs in a
    worker thread so the event loop keeps serving other jobs.
    """

    schema: str = ""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(self.schema)

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(fn, *args)


def dumps(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def loads(value: str | None) -> Any:
    if value is None:
        return None
    return json.loads(value)
