import logging
import pathlib
import queue
import sqlite3
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def open_readonly(filepath):
    """Open a GeoPackage read-only; the file must already exist."""
    uri = pathlib.Path(filepath).resolve().as_uri() + '?mode=ro'
    logger.debug('Opening gpkg at: %s', filepath)
    return sqlite3.connect(uri, uri=True, check_same_thread=False)


class ConnectionPool:
    """
    Bounded set of read-only SQLite handles to one GeoPackage.

    Handles are opened lazily up to ``size`` and handed out one caller at a
    time; ``connection()`` always puts the handle back, whatever happens in
    the ``with`` block.
    """

    def __init__(self, filepath, size=4, timeout=None):
        if size < 1:
            raise ValueError('Pool size must be at least 1')
        self.filepath = filepath
        self.size = size
        self.timeout = timeout
        self._idle = queue.LifoQueue(maxsize=size)
        self._opened = 0
        self._lock = threading.Lock()
        self._closed = False

    def __repr__(self):
        return f'{type(self).__name__}({self.filepath!r}, size={self.size})'

    def _acquire(self):
        if self._closed:
            raise sqlite3.ProgrammingError('Connection pool is closed')
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if self._opened < self.size:
                connection = open_readonly(self.filepath)
                self._opened += 1
                return connection

        try:
            return self._idle.get(timeout=self.timeout)
        except queue.Empty:
            raise sqlite3.OperationalError(
                f'No GeoPackage connection available after {self.timeout}s'
            ) from None

    def _release(self, connection):
        with self._lock:
            if self._closed:
                connection.close()
                return
            self._idle.put_nowait(connection)

    @contextmanager
    def connection(self):
        connection = self._acquire()
        try:
            yield connection
        finally:
            self._release(connection)

    def close(self):
        with self._lock:
            self._closed = True
            while True:
                try:
                    self._idle.get_nowait().close()
                except queue.Empty:
                    break
