'''
Database

Public facade of the runtime. The Database wraps up the central pieces for interacting
with the store: the engine (connection pool), the descriptor Registry, and the Accessor,
Manager and RelationResolver that do the actual work.

Every public operation is exactly one transaction boundary: a connection is acquired,
the work runs in a single transaction on it (relation round trips and cascades
included), and the connection is released, whatever the outcome.

.. code-block:: python

    with Database('sqlite:///shop.db') as db:
        order = db.insert(Order(total=100.0, status='NEW'))
        db.find_by_id(Order, order.id)
        db.load_relation(order, 'lines')
'''
import logging
from typing import Callable, Any, TypeVar

from relmap.engine import SQLEngine
from relmap.config import DataSourceConfig
from relmap.registry import Registry
from relmap.accessor import Accessor
from relmap.manager import Manager
from relmap.relations import RelationResolver
from relmap.materializer import Materializer
from relmap.transaction import TransactionCoordinator
from relmap.statement import StatementSpec
from relmap.descriptor import EntityDescriptor

E = TypeVar("E")


logger = logging.getLogger(__name__)


class Session:
    '''
    Operations bound to the connection of one running unit of work. Handed to the
    callable passed to ``Database.execute_in_transaction``; everything done through it
    commits or rolls back together.
    '''
    def __init__(self, database: 'Database', connection):
        self.database   = database
        self.connection = connection

    def find_by_id(self, type_ref, identity):
        return self.database.access.find_by_id(self.connection, type_ref, identity)

    def find_all(self, type_ref):
        return self.database.access.find_all(self.connection, type_ref)

    def find_by(self, type_ref, conditions=None, **kwargs):
        return self.database.access.find_by(
            self.connection, type_ref, {**(conditions or {}), **kwargs}
        )

    def find_one(self, type_ref, conditions=None, **kwargs):
        return self.database.access.find_one(
            self.connection, type_ref, {**(conditions or {}), **kwargs}
        )

    def select(self, type_ref, spec: StatementSpec):
        return self.database.access.select(self.connection, type_ref, spec)

    def query(self, sql, *params, type_ref=None):
        return self.database.access.raw_select(self.connection, sql, params, type_ref)

    def insert(self, entity):
        return self.database.manage.insert(self.connection, entity)

    def update(self, entity):
        return self.database.manage.update(self.connection, entity)

    def save(self, entity):
        return self.database.manage.save(self.connection, entity)

    def delete(self, entity) -> bool:
        return self.database.manage.delete(self.connection, entity)

    def execute(self, sql, *params) -> int:
        return self.database.manage.execute(self.connection, sql, params)

    def load_relation(self, entity, field_name: str):
        self.database.relations.load_named(self.connection, entity, field_name)
        return entity


class Database:
    accessor: type[Accessor]         = Accessor
    manager:  type[Manager]          = Manager
    resolver: type[RelationResolver] = RelationResolver

    def __init__(self, config: DataSourceConfig | str, registry: Registry | None = None):
        '''
        Parameters:
            config:   data source configuration, or a plain store URL
            registry: descriptor registry to use; a fresh one scoped to this Database is
                      created by default
        '''
        self.engine = SQLEngine(config)

        if registry is None:
            registry = Registry(default_schema=self.engine.config.schema)
        self.registry = registry

        self.materializer = Materializer()
        self.transactions = TransactionCoordinator()

        self._access    = self.accessor(self)
        self._manage    = self.manager(self)
        self._relations = self.resolver(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def access(self) -> Accessor:
        return self._access

    @property
    def manage(self) -> Manager:
        return self._manage

    @property
    def relations(self) -> RelationResolver:
        return self._relations

    def close(self):
        self.engine.dispose()

    def resolve(self, type_ref: type) -> EntityDescriptor:
        return self.registry.resolve(type_ref)

    def _run(self, work: Callable[[Any], Any]):
        with self.engine.connect() as connection:
            return self.transactions.run(connection, work)

    def execute_in_transaction(self, work: Callable[[Session], Any]):
        '''
        Run ``work(session)`` as a single unit of work.
        '''
        return self._run(lambda connection: work(Session(self, connection)))

    def find_by_id(self, type_ref: type[E], identity) -> E | None:
        return self._run(
            lambda connection: self.access.find_by_id(connection, type_ref, identity)
        )

    def find_all(self, type_ref: type[E]) -> list[E]:
        return self._run(
            lambda connection: self.access.find_all(connection, type_ref)
        )

    def find_by(self, type_ref: type[E], conditions: dict | None = None, **kwargs) -> list[E]:
        '''
        Entities whose columns equal every given condition. Conditions can be passed as
        a dict or as keyword arguments, keyed by field or column name.
        '''
        conditions = {**(conditions or {}), **kwargs}
        return self._run(
            lambda connection: self.access.find_by(connection, type_ref, conditions)
        )

    def find_one(self, type_ref: type[E], conditions: dict | None = None, **kwargs) -> E | None:
        conditions = {**(conditions or {}), **kwargs}
        return self._run(
            lambda connection: self.access.find_one(connection, type_ref, conditions)
        )

    def select(self, type_ref: type[E], spec: StatementSpec) -> list[E]:
        return self._run(
            lambda connection: self.access.select(connection, type_ref, spec)
        )

    def save(self, entity: E) -> E:
        return self._run(
            lambda connection: self.manage.save(connection, entity)
        )

    def save_all(self, entities, progress=False) -> list:
        return self._run(
            lambda connection: self.manage.save_all(connection, entities, progress=progress)
        )

    def insert(self, entity: E) -> E:
        return self._run(
            lambda connection: self.manage.insert(connection, entity)
        )

    def update(self, entity: E) -> E:
        return self._run(
            lambda connection: self.manage.update(connection, entity)
        )

    def delete(self, entity) -> bool:
        return self._run(
            lambda connection: self.manage.delete(connection, entity)
        )

    def execute(self, sql: str, *params) -> int:
        '''
        Raw parameterized mutation; returns the affected-row count.
        '''
        return self._run(
            lambda connection: self.manage.execute(connection, sql, params)
        )

    def query(self, sql: str, *params, type_ref: type | None = None) -> list:
        '''
        Raw parameterized query. Returns entities (EAGER relations expanded) when
        ``type_ref`` is given, otherwise ordered column-value dicts.
        '''
        return self._run(
            lambda connection: self.access.raw_select(connection, sql, params, type_ref)
        )

    def load_relation(self, entity: E, field_name: str) -> E:
        '''
        Load the named relation on the entity, whatever its fetch policy.
        '''
        self._run(
            lambda connection: self.relations.load_named(connection, entity, field_name)
        )
        return entity

    def load_eager_relations(self, entity: E) -> E:
        self._run(
            lambda connection: self.relations.expand_eager(connection, entity)
        )
        return entity
