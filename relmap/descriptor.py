'''
Descriptor

Compiled, immutable metadata describing how an entity type maps to a table and its
relationships. Descriptors are produced once per type by the ``Registry`` and are never
mutated afterwards; every accessor and mutator an operation needs (column getters and
setters, relation field access, read-time conversion tags) is fixed at build time, so no
name-based attribute lookup or type inspection happens per row.

Descriptor layout:

    EntityDescriptor
    |-- identity: IdentityDescriptor -> ColumnDescriptor
    |-- columns:  (ColumnDescriptor, ...)     identity column first, then declared order
    `-- relations: (RelationDescriptor, ...)  declared order
'''
import enum
import numbers
from types import MappingProxyType
from typing import Any, Callable
import dataclasses
from dataclasses import dataclass

from relmap.errors import ConfigurationError
from relmap.util.convert import ConversionTag, from_store


class RelationKind(enum.Enum):
    ONE_TO_ONE   = 'one_to_one'
    ONE_TO_MANY  = 'one_to_many'
    MANY_TO_ONE  = 'many_to_one'
    MANY_TO_MANY = 'many_to_many'


class FetchType(enum.Enum):
    EAGER = 'eager'
    LAZY  = 'lazy'


@dataclass(frozen=True, eq=False)
class ColumnDescriptor:
    name       : str
    field      : str
    insertable : bool
    updatable  : bool
    tag        : ConversionTag
    py_type    : Any
    get        : Callable[[Any], Any] = dataclasses.field(repr=False)
    set        : Callable[[Any, Any], None] = dataclasses.field(repr=False)

    def write(self, entity, raw_value):
        '''
        Assign a raw stored value to the entity, converted by the column's tag.
        '''
        self.set(entity, from_store(raw_value, self.tag, self.py_type))


@dataclass(frozen=True, eq=False)
class IdentityDescriptor:
    column    : ColumnDescriptor
    generated : bool

    @property
    def name(self) -> str:
        return self.column.name

    @property
    def field(self) -> str:
        return self.column.field

    def get(self, entity):
        return self.column.get(entity)

    def set(self, entity, value):
        self.column.set(entity, value)

    def is_unassigned(self, entity) -> bool:
        '''
        Whether the entity has no identity yet: the value is absent or numerically zero.
        '''
        value = self.get(entity)
        if value is None:
            return True
        if isinstance(value, numbers.Number) and not isinstance(value, bool):
            return value == 0
        return False


@dataclass(frozen=True, eq=False)
class RelationDescriptor:
    '''
    Relation binding for a single field.

    ``join_column`` names a column on the declaring (owning) side for MANY_TO_ONE and
    owning ONE_TO_ONE relations, and the bridge-table column referencing the declaring
    entity for MANY_TO_MANY. ``mapped_by`` names the field on the target type holding
    the foreign key, for ONE_TO_MANY and inverse ONE_TO_ONE relations.
    '''
    kind                : RelationKind
    field               : str
    target_ref          : Any = dataclasses.field(repr=False)
    join_column         : str | None = None
    mapped_by           : str | None = None
    join_table          : str | None = None
    inverse_join_column : str | None = None
    fetch               : FetchType = FetchType.LAZY
    cascade             : bool = False
    orphan_removal      : bool = False
    collection          : bool = False
    collection_kind     : type = list
    get                 : Callable[[Any], Any] = dataclasses.field(default=None, repr=False)
    set                 : Callable[[Any, Any], None] = dataclasses.field(default=None, repr=False)

    @property
    def target(self) -> type:
        '''
        Target entity type. Targets may be declared as a zero-argument callable so that
        mutually referencing types can be bound in any order.
        '''
        target = self.target_ref
        if not isinstance(target, type):
            target = target()

        if not isinstance(target, type):
            raise ConfigurationError(
                f'Relation "{self.field}" target does not resolve to a type: {target!r}'
            )

        return target

    @property
    def owning(self) -> bool:
        return self.kind is RelationKind.MANY_TO_ONE or (
            self.kind is RelationKind.ONE_TO_ONE and not self.mapped_by
        )

    @property
    def eager(self) -> bool:
        return self.fetch is FetchType.EAGER

    def wrap(self, entities: list):
        return self.collection_kind(entities)


@dataclass(frozen=True, eq=False)
class EntityDescriptor:
    type_ref  : type
    table     : str
    identity  : IdentityDescriptor
    columns   : tuple[ColumnDescriptor, ...]
    relations : tuple[RelationDescriptor, ...]

    _by_name     : MappingProxyType = dataclasses.field(init=False, repr=False)
    _by_field    : MappingProxyType = dataclasses.field(init=False, repr=False)
    _by_relation : MappingProxyType = dataclasses.field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(
            self, '_by_name', MappingProxyType({c.name: c for c in self.columns})
        )
        object.__setattr__(
            self, '_by_field', MappingProxyType({c.field: c for c in self.columns})
        )
        object.__setattr__(
            self, '_by_relation', MappingProxyType({r.field: r for r in self.relations})
        )

    @property
    def name(self) -> str:
        return self.type_ref.__name__

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def eager_relations(self) -> list[RelationDescriptor]:
        return [r for r in self.relations if r.eager]

    @property
    def cascade_relations(self) -> list[RelationDescriptor]:
        return [r for r in self.relations if r.cascade]

    @property
    def orphan_removal_relations(self) -> list[RelationDescriptor]:
        return [
            r for r in self.relations
            if r.orphan_removal and r.kind is RelationKind.ONE_TO_MANY
        ]

    def column(self, name: str) -> ColumnDescriptor | None:
        return self._by_name.get(name)

    def column_for_field(self, field_name: str) -> ColumnDescriptor | None:
        return self._by_field.get(field_name)

    def find_relation(self, field_name: str) -> RelationDescriptor | None:
        return self._by_relation.get(field_name)

    def relation(self, field_name: str) -> RelationDescriptor:
        relation = self._by_relation.get(field_name)
        if relation is None:
            raise ConfigurationError(
                f'Relation "{field_name}" not declared on entity {self.name}'
            )
        return relation

    def instantiate(self):
        '''
        Fresh, unpopulated instance. ``__init__`` is not called; every column and
        relation field starts out as ``None``.
        '''
        entity = object.__new__(self.type_ref)
        for column in self.columns:
            column.set(entity, None)
        for relation in self.relations:
            relation.set(entity, None)
        return entity

    def insert_values(self, entity) -> dict:
        '''
        Column-value set for an INSERT. A generated identity is left to the store.
        '''
        values = {}
        for column in self.columns:
            if column is self.identity.column:
                if self.identity.generated:
                    continue
            elif not column.insertable:
                continue
            values[column.name] = column.get(entity)
        return values

    def update_values(self, entity) -> dict:
        '''
        Column-value set for an UPDATE; the identity column is never updated.
        '''
        return {
            column.name: column.get(entity)
            for column in self.columns
            if column is not self.identity.column and column.updatable
        }
