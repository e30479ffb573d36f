"""Store — owns the engine and hands out explicit transaction handles.

Unlike a ``with engine.begin()`` block, a :class:`StoreTransaction` stays
open across calls: the interactive console begins a transaction with one
command and commits or rolls it back with a later one. Each handle owns a
dedicated connection for its whole lifetime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from soundgood.infrastructure.database.engine import create_db_engine

if TYPE_CHECKING:
    from sqlalchemy import Connection, Transaction
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


@dataclass
class StoreTransaction:
    """An open database transaction and the connection it runs on.

    ``commit()`` and ``rollback()`` end the transaction and release the
    connection back to the pool; the handle must not be used afterwards.
    """

    conn: Connection
    _trans: Transaction

    @property
    def is_active(self) -> bool:
        return self._trans.is_active

    def commit(self) -> None:
        try:
            self._trans.commit()
        finally:
            self.conn.close()

    def rollback(self) -> None:
        try:
            self._trans.rollback()
        finally:
            self.conn.close()


class Store:
    """Entry point to the rental database.

    Constructed from a database URL (or an existing engine, for tests).
    """

    def __init__(self, url: str | None = None, *, engine: Engine | None = None, echo: bool = False):
        if engine is None:
            if url is None:
                msg = "Store requires a database URL or an engine"
                raise ValueError(msg)
            engine = create_db_engine(url, echo=echo)
        self._engine = engine

    @property
    def engine(self) -> Engine:
        """The underlying SQLAlchemy engine."""
        return self._engine

    def begin(self) -> StoreTransaction:
        """Open a new connection and start a transaction on it."""
        conn = self._engine.connect()
        try:
            trans = conn.begin()
        except BaseException:
            conn.close()
            raise
        logger.debug("Transaction opened on %s", self._engine.url.render_as_string())
        return StoreTransaction(conn=conn, _trans=trans)

    def close(self) -> None:
        """Dispose of the connection pool."""
        self._engine.dispose()
