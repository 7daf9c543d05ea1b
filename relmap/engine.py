'''
Engine

Pooled store connection collaborator. Wraps a SQLAlchemy engine built from a
``DataSourceConfig`` and exposes connection acquisition and positional statement
execution.

SQLite (pysqlite, ``qmark`` paramstyle) is the supported dialect. File databases get a
bounded queue pool with blocking checkout up to ``connection_timeout``, connections are
recycled after ``max_lifetime`` and evicted on checkout once idle longer than
``idle_timeout``. In-memory databases share a single static connection.
'''
import time
import logging
from contextlib import contextmanager

import sqlalchemy as sa
from sqlalchemy.pool import StaticPool

from relmap.util import db
from relmap.config import DataSourceConfig
from relmap.errors import ResourceError
from relmap.statement import StatementSpec


logger = logging.getLogger(__name__)


class SQLEngine:
    def __init__(self, config: DataSourceConfig | str):
        if isinstance(config, str):
            config = DataSourceConfig(url=config)

        self.config = config
        self.manager = self._create_manager()

        logger.info(
            f'Engine created for "{self.manager.url.render_as_string(hide_password=True)}"'
        )

    def _create_manager(self) -> sa.Engine:
        url = self.config.sa_url()

        if db.is_memory_url(url):
            manager = sa.create_engine(
                url,
                echo=self.config.echo,
                poolclass=StaticPool,
                connect_args={'check_same_thread': False},
            )
        else:
            manager = sa.create_engine(url, **self.config.engine_kwargs())
            self._attach_idle_eviction(manager)

        if url.get_backend_name() == 'sqlite':
            sa.event.listen(manager, 'connect', self._enable_foreign_keys)

        return manager

    @staticmethod
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    def _attach_idle_eviction(self, manager):
        idle_timeout = self.config.idle_timeout

        def stamp(dbapi_connection, connection_record):
            connection_record.info['checked_in_at'] = time.monotonic()

        def evict_idle(dbapi_connection, connection_record, connection_proxy):
            checked_in_at = connection_record.info.get('checked_in_at')
            if checked_in_at is None:
                return

            if time.monotonic() - checked_in_at > idle_timeout:
                logger.debug(f'Evicting connection idle for more than {idle_timeout}s')
                # the pool discards the connection and retries the checkout
                raise sa.exc.DisconnectionError('Connection exceeded idle timeout')

        sa.event.listen(manager, 'checkin', stamp)
        sa.event.listen(manager, 'checkout', evict_idle)

    @contextmanager
    def connect(self):
        '''
        Acquire one pooled connection for the duration of the with-block, always
        returning it to the pool afterwards.
        '''
        try:
            connection = self.manager.connect()
        except sa.exc.TimeoutError as e:
            raise ResourceError(
                f'Timed out after {self.config.connection_timeout}s acquiring a connection',
                cause=e,
            ) from e
        except sa.exc.DBAPIError as e:
            raise ResourceError('Unable to obtain a database connection', cause=e) from e

        try:
            yield connection
        finally:
            connection.close()

    @staticmethod
    def _execute(connection, statement: StatementSpec | str, params=()):
        '''
        Execute SQL text with positional parameters on the given connection. Accepts a
        built ``StatementSpec`` or raw SQL text.

        Returns: SQLAlchemy CursorResult
        '''
        if isinstance(statement, StatementSpec):
            sql, params = statement.sql, statement.params
        else:
            sql = statement

        logger.debug(f'Executing [{len(params)} params]: {sql}')

        return connection.exec_driver_sql(sql, tuple(params))

    def dispose(self):
        self.manager.dispose()
        logger.info('Engine connection pool disposed')
