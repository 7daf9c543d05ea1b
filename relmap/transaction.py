'''
Transaction coordination for a single unit of work.

A unit of work is one flat transaction bound to one connection for its entire duration.
There are no nested transactions or savepoints: every statement the work issues,
including relation round trips, runs on the connection handed to it.
'''
import logging
from typing import Callable, TypeVar

import sqlalchemy as sa

from relmap.errors import ConfigurationError, ValidationError, ExecutionError

T = TypeVar("T")


logger = logging.getLogger(__name__)

AUTOCOMMIT = 'AUTOCOMMIT'

JOURNAL_KEY = 'relmap_assignments'


def assign(connection, column, entity, value):
    '''
    Set a column value on an entity from inside a unit of work. The previous value is
    journaled on the connection, and put back if the unit of work rolls back.
    '''
    journal = connection.info.get(JOURNAL_KEY)
    if journal is not None:
        journal.append((column, entity, column.get(entity)))
    column.set(entity, value)


class TransactionCoordinator:
    def run(self, connection: sa.Connection, work: Callable[[sa.Connection], T]) -> T:
        '''
        Run ``work(connection)`` inside a transaction.

        Auto-commit is switched off for the duration if the connection had it enabled,
        and restored on every path. The transaction commits when ``work`` returns and is
        rolled back on any error. Configuration and validation errors are re-raised as-is
        (the operation was never attempted), as are execution errors already raised by
        the work itself; anything else is wrapped in an ``ExecutionError``. On rollback,
        values set through ``assign()`` (generated identities, back-filled foreign keys)
        are put back on their entities, newest first.
        '''
        autocommit = self._is_autocommit(connection)
        if autocommit:
            connection.execution_options(isolation_level=connection.default_isolation_level)

        journal = connection.info[JOURNAL_KEY] = []

        transaction = None
        try:
            transaction = connection.begin()
            result = work(connection)
            transaction.commit()
            return result
        except (ConfigurationError, ValidationError, ExecutionError) as e:
            self._rollback(transaction, e)
            self._restore(journal)
            raise
        except Exception as e:
            self._rollback(transaction, e)
            self._restore(journal)
            raise ExecutionError('Unit of work failed', cause=e) from e
        finally:
            connection.info.pop(JOURNAL_KEY, None)
            if autocommit:
                connection.execution_options(isolation_level=AUTOCOMMIT)

    @staticmethod
    def _is_autocommit(connection) -> bool:
        return connection.get_execution_options().get('isolation_level') == AUTOCOMMIT

    @staticmethod
    def _restore(journal):
        for column, entity, previous in reversed(journal):
            column.set(entity, previous)

    @staticmethod
    def _rollback(transaction, error):
        if transaction is None:
            return

        try:
            transaction.rollback()
            logger.warning(f'Transaction rolled back after {type(error).__name__}: {error}')
        except sa.exc.SQLAlchemyError as rollback_error:
            logger.error(f'Rollback failed: {rollback_error}')
