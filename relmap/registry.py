'''
Registry

Builds and caches one ``EntityDescriptor`` per entity type. A Registry is owned by a
single runtime (``Database``) and lives as long as it does; ``clear()`` tears the cache
down.

Bindings are looked up first among those attached with ``bind()``, then on the type's
``__binding__`` attribute (see ``relmap.binding.entity``). Resolution is idempotent and
thread-safe: concurrent first callers for the same type all observe the result of a
single build.

Development log:
    - Relation targets are not resolved at build time. Targets may be declared as
      callables returning types defined later in a module (or in another module), and
      resolving the target's descriptor while building the source's would recurse on
      cyclic graphs. Bindings that reference the *target* type (``mapped_by``) are
      therefore checked when the relation is first resolved, still surfacing as
      ConfigurationError.
'''
import inspect
import logging
import threading
import typing
import collections.abc

from relmap.binding import Binding, Column
from relmap.errors import ConfigurationError
from relmap.descriptor import (
    RelationKind,
    EntityDescriptor,
    ColumnDescriptor,
    IdentityDescriptor,
    RelationDescriptor,
)
from relmap.util.convert import tag_for


logger = logging.getLogger(__name__)

_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)


def _getter(field_name):
    def get_value(entity):
        return getattr(entity, field_name, None)
    return get_value

def _setter(field_name):
    def set_value(entity, value):
        setattr(entity, field_name, value)
    return set_value

def _field_types(type_ref) -> dict:
    '''
    Resolved field annotations of a type, falling back to the raw (possibly string)
    annotations when forward references can't be evaluated yet.
    '''
    try:
        return typing.get_type_hints(type_ref)
    except NameError:
        hints = {}
        for _cls in reversed(type_ref.__mro__):
            hints.update(inspect.get_annotations(_cls))
        return hints

def _collection_kind(hint) -> type:
    if isinstance(hint, str):
        head = hint.split('[', 1)[0].split('.')[-1]
        return set if head in ('set', 'frozenset', 'Set', 'MutableSet') else list

    args = typing.get_args(hint)
    if args and type(None) in args:
        non_null = [a for a in args if a is not type(None)]
        if len(non_null) == 1:
            hint = non_null[0]

    origin = typing.get_origin(hint) or hint
    if origin in _SET_ORIGINS:
        return set

    return list


class Registry:
    def __init__(self, default_schema: str | None = None):
        '''
        Parameters:
            default_schema: schema used to qualify table names of bindings that don't
                            declare their own
        '''
        self.default_schema = default_schema

        self._bindings:    dict[type, Binding] = {}
        self._descriptors: dict[type, EntityDescriptor] = {}

        self._lock = threading.Lock()

    def __contains__(self, type_ref):
        return type_ref in self._descriptors

    def __len__(self):
        return len(self._descriptors)

    def bind(self, type_ref: type, binding: Binding) -> None:
        '''
        Attach a binding to a type from outside of it. Bindings can't be replaced once
        the type has been resolved.
        '''
        with self._lock:
            if type_ref in self._descriptors:
                raise ConfigurationError(
                    f'Entity {type_ref.__name__} already resolved; binding is immutable'
                )
            self._bindings[type_ref] = binding

    def resolve(self, type_ref: type) -> EntityDescriptor:
        descriptor = self._descriptors.get(type_ref)
        if descriptor is not None:
            return descriptor

        with self._lock:
            # another caller may have completed the build while we waited
            descriptor = self._descriptors.get(type_ref)
            if descriptor is None:
                descriptor = self._build(type_ref)
                self._descriptors[type_ref] = descriptor

        return descriptor

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()

    def _binding_for(self, type_ref) -> Binding:
        binding = self._bindings.get(type_ref)
        if binding is None:
            binding = getattr(type_ref, '__binding__', None)

        if not isinstance(binding, Binding):
            raise ConfigurationError(f'Entity {type_ref.__name__} has no table binding')

        return binding

    def _table_name(self, type_ref, binding: Binding) -> str:
        table = binding.table or type_ref.__name__.lower()
        schema = binding.schema or self.default_schema

        if schema:
            return f'{schema}.{table}'

        return table

    def _build(self, type_ref: type) -> EntityDescriptor:
        if not isinstance(type_ref, type):
            raise ConfigurationError(f'Cannot resolve descriptor for non-type {type_ref!r}')

        binding = self._binding_for(type_ref)
        if binding.identity is None:
            raise ConfigurationError(f'Entity {type_ref.__name__} has no identity column')

        hints = _field_types(type_ref)

        id_binding = binding.identity
        id_column = self._build_column(
            Column(id_binding.field, id_binding.column),
            hints,
        )
        identity = IdentityDescriptor(id_column, id_binding.generated)

        columns = [id_column]
        for column_binding in binding.columns:
            if column_binding.field == id_binding.field:
                continue
            columns.append(self._build_column(column_binding, hints))

        seen = set()
        for column in columns:
            if column.name in seen:
                raise ConfigurationError(
                    f'Entity {type_ref.__name__} maps column "{column.name}" more than once'
                )
            seen.add(column.name)

        column_names = {c.name for c in columns}
        column_fields = {c.field for c in columns}

        relations = []
        relation_fields = set()
        for relation_binding in binding.relations:
            relation = self._build_relation(type_ref, relation_binding, hints)

            if relation.field in relation_fields or relation.field in column_fields:
                raise ConfigurationError(
                    f'Entity {type_ref.__name__} binds field "{relation.field}" more than once'
                )
            relation_fields.add(relation.field)

            if relation.owning and relation.join_column not in column_names:
                raise ConfigurationError(
                    f'Join column "{relation.join_column}" of relation "{relation.field}" '
                    f'not mapped on entity {type_ref.__name__}'
                )

            relations.append(relation)

        descriptor = EntityDescriptor(
            type_ref  = type_ref,
            table     = self._table_name(type_ref, binding),
            identity  = identity,
            columns   = tuple(columns),
            relations = tuple(relations),
        )

        logger.debug(
            f'Built descriptor for {type_ref.__name__} -> "{descriptor.table}" '
            f'({len(columns)} columns, {len(relations)} relations)'
        )

        return descriptor

    def _build_column(self, column_binding: Column, hints: dict) -> ColumnDescriptor:
        py_type = column_binding.type
        if py_type is None:
            py_type = hints.get(column_binding.field)

        return ColumnDescriptor(
            name       = column_binding.column or column_binding.field,
            field      = column_binding.field,
            insertable = column_binding.insertable,
            updatable  = column_binding.updatable,
            tag        = tag_for(py_type),
            py_type    = py_type,
            get        = _getter(column_binding.field),
            set        = _setter(column_binding.field),
        )

    def _build_relation(self, type_ref, relation_binding, hints) -> RelationDescriptor:
        kind = relation_binding.kind
        field_name = relation_binding.field
        label = f'{type_ref.__name__}.{field_name}'

        if not isinstance(kind, RelationKind):
            raise ConfigurationError(f'Unsupported relation kind for {label}: {kind!r}')

        if relation_binding.target is None:
            raise ConfigurationError(f'Relation {label} declares no target entity')

        join_column = relation_binding.join_column
        mapped_by   = relation_binding.mapped_by

        if kind is RelationKind.MANY_TO_ONE and not join_column:
            join_column = f'{field_name}_id'

        if kind is RelationKind.ONE_TO_ONE:
            if mapped_by and join_column:
                raise ConfigurationError(
                    f'Relation {label} declares both a join column and mapped-by field'
                )
            if not mapped_by and not join_column:
                join_column = f'{field_name}_id'

        if kind is RelationKind.ONE_TO_MANY and not mapped_by:
            raise ConfigurationError(f'One-to-many relation {label} requires mapped_by')

        if kind is RelationKind.MANY_TO_MANY:
            missing = [
                name for name, value in (
                    ('join_table',          relation_binding.join_table),
                    ('join_column',         join_column),
                    ('inverse_join_column', relation_binding.inverse_join_column),
                ) if not value
            ]
            if missing:
                raise ConfigurationError(
                    f'Many-to-many relation {label} missing {", ".join(missing)}'
                )

        is_collection = kind in (RelationKind.ONE_TO_MANY, RelationKind.MANY_TO_MANY)

        collection_kind = list
        if is_collection:
            collection_kind = relation_binding.collection
            if collection_kind is None:
                collection_kind = _collection_kind(hints.get(field_name))

        return RelationDescriptor(
            kind                = kind,
            field               = field_name,
            target_ref          = relation_binding.target,
            join_column         = join_column,
            mapped_by           = mapped_by,
            join_table          = relation_binding.join_table,
            inverse_join_column = relation_binding.inverse_join_column,
            fetch               = relation_binding.fetch,
            cascade             = relation_binding.cascade,
            orphan_removal      = relation_binding.orphan_removal,
            collection          = is_collection,
            collection_kind     = collection_kind,
            get                 = _getter(field_name),
            set                 = _setter(field_name),
        )
