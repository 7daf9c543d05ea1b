'''
Manager

Write-side operations within a unit of work: insert, update, save (with cascades),
delete (with orphan removal) and raw mutations. As with the Accessor, each method runs
on the connection of the enclosing transaction, so a cascade spanning many entities is
committed or rolled back as a whole.

Note: save routing
    ``save()`` inserts when the entity's identity is absent or numerically zero, and
    updates otherwise. The owner's own write always happens before any cascaded write,
    and EAGER relations are only expanded on the owner once its cascades are done, so
    an expansion never replaces a collection that still has members waiting to be saved.
'''
import time
import logging
from typing import TypeVar

from tqdm.auto import tqdm

from relmap import statement
from relmap.engine import SQLEngine
from relmap.errors import ValidationError, ExecutionError
from relmap.transaction import assign
from relmap.util.convert import to_store

E = TypeVar("E")


logger = logging.getLogger(__name__)


class Manager:
    def __init__(self, database):
        self.database = database

    def insert(self, connection, entity: E, expand=True) -> E:
        '''
        Insert the entity's insertable columns. A generated identity is read back with
        ``RETURNING`` and assigned to the entity.
        '''
        descriptor = self.database.registry.resolve(type(entity))
        identity = descriptor.identity

        builder = statement.insert(descriptor.table).values(descriptor.insert_values(entity))
        if identity.generated:
            builder.returning(identity.name)
        spec = builder.build()

        result = SQLEngine._execute(connection, spec)
        if identity.generated:
            row = result.fetchone()
            result.close()
            if row is None:
                raise ExecutionError(f'Insert into "{descriptor.table}" returned no identity')
            assign(connection, identity.column, entity, row[0])

        logger.debug(f'Inserted {descriptor.name} with identity {identity.get(entity)!r}')

        if expand:
            self.database.relations.expand_eager(connection, entity)

        return entity

    def update(self, connection, entity: E, expand=True) -> E:
        '''
        Update the entity's updatable columns by identity. Fails with ExecutionError
        when no row matches.
        '''
        descriptor = self.database.registry.resolve(type(entity))
        identity_value = descriptor.identity.get(entity)
        if identity_value is None:
            raise ValidationError(f'Cannot update {descriptor.name} without an identity value')

        spec = (
            statement.update(descriptor.table)
            .set(descriptor.update_values(entity))
            .where({descriptor.identity.name: identity_value})
            .build()
        )

        result = SQLEngine._execute(connection, spec)
        if result.rowcount == 0:
            raise ExecutionError(
                f'No rows affected updating {descriptor.name} with identity {identity_value!r}'
            )

        if expand:
            self.database.relations.expand_eager(connection, entity)

        return entity

    def save(self, connection, entity: E) -> E:
        descriptor = self.database.registry.resolve(type(entity))

        if descriptor.identity.is_unassigned(entity):
            self.insert(connection, entity, expand=False)
        else:
            self.update(connection, entity, expand=False)

        self.database.relations.cascade_save(connection, entity)
        self.database.relations.expand_eager(connection, entity)

        return entity

    def save_all(self, connection, entities, progress=False) -> list:
        entities = list(entities)
        if not entities:
            return []

        start = time.time()
        saved = [
            self.save(connection, entity)
            for entity in tqdm(entities, desc='Saving entities', disable=not progress)
        ]
        logger.info(f'Saved {len(saved)} entities in {time.time()-start:.2f}s')

        return saved

    def delete(self, connection, entity) -> bool:
        '''
        Delete the entity's row, after removing the children of every orphan-removal
        relation. Returns whether the owner row existed.
        '''
        descriptor = self.database.registry.resolve(type(entity))
        identity_value = descriptor.identity.get(entity)
        if identity_value is None:
            raise ValidationError(f'Cannot delete {descriptor.name} without an identity value')

        self.database.relations.cascade_delete(connection, entity)

        spec = (
            statement.delete(descriptor.table)
            .where({descriptor.identity.name: identity_value})
            .build()
        )
        result = SQLEngine._execute(connection, spec)

        logger.debug(f'Deleted {descriptor.name} {identity_value!r} ({result.rowcount} rows)')

        return result.rowcount > 0

    def execute(self, connection, sql: str, params=()) -> int:
        '''
        Run a raw mutation with positional parameters; returns the affected-row count.
        '''
        result = SQLEngine._execute(connection, sql, [to_store(p) for p in params])
        return result.rowcount
