'''
Relations

Resolves declared relationships on materialized entities and cascades writes and deletes
across them. All work happens on the connection of the enclosing unit of work, so every
round trip a resolution triggers is part of the same transaction.

Loading, by relation kind:

    MANY_TO_ONE, owning ONE_TO_ONE
        read the local join column; if set, fetch the target by identity
    inverse ONE_TO_ONE
        fetch targets whose mapped-by column holds this entity's identity; first match
    ONE_TO_MANY
        fetch targets whose mapped-by column holds this entity's identity
    MANY_TO_MANY
        SELECT t.* FROM <target> t
        INNER JOIN <bridge> j ON t.<target id> = j.<inverse join column>
        WHERE j.<join column> = <this identity>

Eager expansion is single-level: entities loaded while expanding a relation do not
have their own EAGER relations expanded. This bounds traversal depth and keeps cyclic
graphs (A -> B -> A) from recursing without needing an identity map.

Note: inverse one-to-one uniqueness
    Nothing enforces that at most one target row references the entity on an inverse
    one-to-one relation. When several do, the first row returned by the store is used and
    the rest are silently ignored.
'''
import logging

from relmap import statement
from relmap.engine import SQLEngine
from relmap.errors import ConfigurationError
from relmap.transaction import assign
from relmap.descriptor import RelationKind, EntityDescriptor, RelationDescriptor


logger = logging.getLogger(__name__)


class RelationResolver:
    def __init__(self, database):
        self.database = database

    @property
    def registry(self):
        return self.database.registry

    def load_named(self, connection, entity, field_name: str):
        '''
        Explicitly load a relation by field name, regardless of its fetch policy.
        '''
        descriptor = self.registry.resolve(type(entity))
        self.load(connection, entity, descriptor.relation(field_name))

    def expand_eager(self, connection, entity):
        descriptor = self.registry.resolve(type(entity))
        for relation in descriptor.eager_relations:
            self.load(connection, entity, relation)

    def load(self, connection, entity, relation: RelationDescriptor):
        logger.debug(
            f'Loading {relation.kind.name} relation '
            f'{type(entity).__name__}.{relation.field}'
        )

        match relation.kind:
            case RelationKind.MANY_TO_ONE:
                self._load_owning(connection, entity, relation)
            case RelationKind.ONE_TO_ONE if relation.owning:
                self._load_owning(connection, entity, relation)
            case RelationKind.ONE_TO_ONE:
                self._load_inverse_one(connection, entity, relation)
            case RelationKind.ONE_TO_MANY:
                self._load_one_to_many(connection, entity, relation)
            case RelationKind.MANY_TO_MANY:
                self._load_many_to_many(connection, entity, relation)
            case _:
                raise ConfigurationError(f'Unsupported relation kind: {relation.kind!r}')

    def mapped_by_column(self, relation: RelationDescriptor, target: EntityDescriptor) -> str:
        '''
        Column on the target table holding the foreign key of an inverse relation.
        ``mapped_by`` may name a column field of the target, one of the target's owning
        relations (whose join column is used), or a target column name directly.
        '''
        mapped_by = relation.mapped_by

        column = target.column_for_field(mapped_by)
        if column is not None:
            return column.name

        target_relation = target.find_relation(mapped_by)
        if target_relation is not None and target_relation.owning:
            return target_relation.join_column

        column = target.column(mapped_by)
        if column is not None:
            return column.name

        raise ConfigurationError(
            f'Mapped-by field "{mapped_by}" of relation "{relation.field}" does not '
            f'resolve to a column on entity {target.name}'
        )

    def _identity(self, entity):
        return self.registry.resolve(type(entity)).identity.get(entity)

    def _load_owning(self, connection, entity, relation):
        descriptor = self.registry.resolve(type(entity))

        join_value = descriptor.column(relation.join_column).get(entity)
        if join_value is None:
            return

        related = self.database.access.find_by_id(
            connection,
            relation.target,
            join_value,
            expand=False,
        )
        if related is not None:
            relation.set(entity, related)

    def _load_inverse_one(self, connection, entity, relation):
        identity = self._identity(entity)
        if identity is None:
            return

        target = self.registry.resolve(relation.target)
        related = self.database.access.find_by(
            connection,
            relation.target,
            {self.mapped_by_column(relation, target): identity},
            expand=False,
        )
        if related:
            relation.set(entity, related[0])

    def _load_one_to_many(self, connection, entity, relation):
        identity = self._identity(entity)
        if identity is None:
            return

        target = self.registry.resolve(relation.target)
        related = self.database.access.find_by(
            connection,
            relation.target,
            {self.mapped_by_column(relation, target): identity},
            expand=False,
        )
        relation.set(entity, relation.wrap(related))

    def _load_many_to_many(self, connection, entity, relation):
        identity = self._identity(entity)
        if identity is None:
            return

        target = self.registry.resolve(relation.target)
        spec = (
            statement.select('t.*')
            .from_(f'{target.table} t')
            .inner_join(
                f'{relation.join_table} j',
                f't.{target.identity.name} = j.{relation.inverse_join_column}',
            )
            .where({f'j.{relation.join_column}': identity})
            .build()
        )

        result = SQLEngine._execute(connection, spec)
        related = self.database.materializer.materialize_all(result, target)
        relation.set(entity, relation.wrap(related))

    def cascade_save(self, connection, entity):
        '''
        Save every entity reachable through a cascading relation, after the owner's own
        write. Inverse-side children get their mapped-by column pointed at the owner
        first; owning-side targets saved here back-fill the owner's join column.
        '''
        descriptor = self.registry.resolve(type(entity))
        manage = self.database.manage

        for relation in descriptor.cascade_relations:
            value = relation.get(entity)
            if value is None:
                continue

            if relation.owning:
                manage.save(connection, value)
                self._backfill_join_column(connection, entity, descriptor, relation, value)
                continue

            members = value if relation.collection else [value]
            if relation.kind is RelationKind.MANY_TO_MANY:
                for member in members:
                    manage.save(connection, member)
                continue

            target = self.registry.resolve(relation.target)
            fk_column = target.column(self.mapped_by_column(relation, target))
            identity = descriptor.identity.get(entity)

            for member in members:
                assign(connection, fk_column, member, identity)
                manage.save(connection, member)

    def _backfill_join_column(self, connection, entity, descriptor, relation, related):
        join_column = descriptor.column(relation.join_column)
        related_identity = self.registry.resolve(type(related)).identity.get(related)

        if related_identity is None or join_column.get(entity) == related_identity:
            return

        assign(connection, join_column, entity, related_identity)
        self.database.manage.update(connection, entity, expand=False)

    def cascade_delete(self, connection, entity):
        '''
        Delete, depth-first, every entity held by an orphan-removal one-to-many
        relation. Relations are force-loaded first, whatever their fetch policy.
        '''
        descriptor = self.registry.resolve(type(entity))

        for relation in descriptor.orphan_removal_relations:
            self.load(connection, entity, relation)

            children = relation.get(entity)
            if not children:
                continue

            for child in list(children):
                self.database.manage.delete(connection, child)
