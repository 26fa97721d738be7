"""Connection profile storage.

Profiles are kept in a SQLite table keyed by `uuid`; the filesystem driver
never reads them.
"""
import asyncio
import sqlite3
import logging
import threading
from dataclasses import astuple, dataclass, fields
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS servers (
        uuid TEXT PRIMARY KEY,
        scheme TEXT NOT NULL,
        name TEXT NOT NULL,
        address TEXT NOT NULL,
        port INTEGER NOT NULL,
        initial_dir TEXT NOT NULL DEFAULT '/',
        username TEXT NOT NULL DEFAULT '',
        password TEXT
    )
"""


@dataclass(frozen=True)
class ServerModel:
    uuid: str
    scheme: str
    name: str
    address: str
    port: int
    initial_dir: str = '/'
    username: str = ''
    password: Optional[str] = None


_COLUMNS = ', '.join(f.name for f in fields(ServerModel))
_PLACEHOLDERS = ', '.join('?' for _ in fields(ServerModel))


class ServersRepository:
    """Stores connection profiles.

    Attributes
    ----------
    connection : sqlite3.Connection
        Database connection.
    """

    def __init__(self, connection: Union[sqlite3.Connection, str]) -> None:
        if isinstance(connection, str):
            connection = sqlite3.connect(connection, check_same_thread=False)
        self.connection = connection
        self._lock = threading.Lock()
        with self._lock:
            self.connection.execute(_CREATE_TABLE)
            self.connection.commit()

    async def load_servers(self) -> List[ServerModel]:
        return await asyncio.to_thread(self._load_all)

    async def upsert_server(self, server: ServerModel) -> None:
        await asyncio.to_thread(self._upsert, server)

    async def delete_server(self, server: ServerModel) -> None:
        await asyncio.to_thread(self._delete, server)

    def _load_all(self) -> List[ServerModel]:
        with self._lock:
            rows = self.connection.execute(f'SELECT {_COLUMNS} FROM servers ORDER BY name').fetchall()
        return [ServerModel(*row) for row in rows]

    def _upsert(self, server: ServerModel) -> None:
        with self._lock:
            self.connection.execute(
                f'INSERT OR REPLACE INTO servers ({_COLUMNS}) VALUES ({_PLACEHOLDERS})',
                astuple(server)
            )
            self.connection.commit()
        logger.debug("saved server '%s'", server.uuid)

    def _delete(self, server: ServerModel) -> None:
        with self._lock:
            self.connection.execute('DELETE FROM servers WHERE uuid = ?', (server.uuid,))
            self.connection.commit()
        logger.debug("deleted server '%s'", server.uuid)
