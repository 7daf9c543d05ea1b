'''
Accessor

Read-side operations within a unit of work. Each method takes the connection of the
enclosing transaction as its first argument; the ``Database`` facade supplies it.

Entities produced here have their EAGER relations expanded unless ``expand=False`` is
passed, which is how the relation resolver keeps expansion to a single level.
'''
import logging
from typing import TypeVar

from relmap import statement
from relmap.engine import SQLEngine
from relmap.statement import StatementSpec, StatementKind
from relmap.errors import ValidationError
from relmap.util.convert import to_store

E = TypeVar("E")


logger = logging.getLogger(__name__)


class Accessor:
    def __init__(self, database):
        self.database = database

    def _expand(self, connection, entities, expand):
        if expand:
            for entity in entities:
                self.database.relations.expand_eager(connection, entity)
        return entities

    def _column_conditions(self, descriptor, conditions: dict) -> dict:
        '''
        Translate field names to column names; keys that aren't mapped fields are taken
        to be column names already.
        '''
        translated = {}
        for key, value in conditions.items():
            column = descriptor.column_for_field(key)
            translated[column.name if column is not None else key] = value
        return translated

    def find_by_id(self, connection, type_ref: type[E], identity, expand=True) -> E | None:
        descriptor = self.database.registry.resolve(type_ref)
        spec = (
            statement.select()
            .from_(descriptor.table)
            .where({descriptor.identity.name: identity})
            .build()
        )

        result = SQLEngine._execute(connection, spec)
        entity = self.database.materializer.materialize_one(result, descriptor)
        result.close()

        if entity is None:
            return None

        return self._expand(connection, [entity], expand)[0]

    def find_all(self, connection, type_ref: type[E], expand=True) -> list[E]:
        descriptor = self.database.registry.resolve(type_ref)
        spec = statement.select().from_(descriptor.table).build()

        return self.select(connection, type_ref, spec, expand=expand)

    def find_by(
        self,
        connection,
        type_ref   : type[E],
        conditions : dict | None = None,
        expand     : bool = True,
    ) -> list[E]:
        '''
        Entities matching every equality condition; ``None`` values match NULL columns.
        Condition keys may be field names or column names.
        '''
        descriptor = self.database.registry.resolve(type_ref)
        spec = (
            statement.select()
            .from_(descriptor.table)
            .where(self._column_conditions(descriptor, conditions or {}))
            .build()
        )

        return self.select(connection, type_ref, spec, expand=expand)

    def find_one(self, connection, type_ref: type[E], conditions=None, expand=True) -> E | None:
        descriptor = self.database.registry.resolve(type_ref)
        spec = (
            statement.select()
            .from_(descriptor.table)
            .where(self._column_conditions(descriptor, conditions or {}))
            .limit(1)
            .build()
        )

        found = self.select(connection, type_ref, spec, expand=expand)
        return found[0] if found else None

    def select(self, connection, type_ref: type[E], spec: StatementSpec, expand=True) -> list[E]:
        '''
        Run a built SELECT and materialize every row as ``type_ref``.
        '''
        if spec.kind is not StatementKind.SELECT:
            raise ValidationError(f'Expected a SELECT statement, got {spec.kind.value}')

        descriptor = self.database.registry.resolve(type_ref)

        result = SQLEngine._execute(connection, spec)
        entities = self.database.materializer.materialize_all(result, descriptor)

        return self._expand(connection, entities, expand)

    def raw_select(self, connection, sql: str, params=(), type_ref=None, expand=True) -> list:
        '''
        Run arbitrary SQL with positional parameters. Rows are materialized as
        ``type_ref`` entities when a type is given, and as raw column-value mappings
        otherwise.
        '''
        descriptor = None
        if type_ref is not None:
            descriptor = self.database.registry.resolve(type_ref)

        result = SQLEngine._execute(connection, sql, [to_store(p) for p in params])

        if descriptor is None:
            return self.database.materializer.materialize_raw(result)

        entities = self.database.materializer.materialize_all(result, descriptor)

        return self._expand(connection, entities, expand)
