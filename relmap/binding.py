'''
Binding

Declarative surface for attaching table, column and relation bindings to entity types.
Bindings are plain data; they are only compiled into descriptors by a ``Registry``.

.. code-block:: python

    @entity(
        table='orders',
        identity=Id('id'),
        columns=['total', Column('status', type=Status)],
        relations=[
            ManyToOne('customer', target=lambda: Customer, fetch=FetchType.EAGER),
        ],
    )
    class Order:
        ...

A binding can also be attached from outside the type through ``Registry.bind()``,
leaving the type itself untouched.
'''
from typing import Any
from dataclasses import dataclass

from relmap.descriptor import RelationKind, FetchType


@dataclass(frozen=True)
class Id:
    field     : str
    column    : str | None = None
    generated : bool = True


@dataclass(frozen=True)
class Column:
    field      : str
    column     : str | None = None
    insertable : bool = True
    updatable  : bool = True
    type       : Any = None


@dataclass(frozen=True)
class Relation:
    kind                : RelationKind
    field               : str
    target              : Any
    join_column         : str | None = None
    mapped_by           : str | None = None
    join_table          : str | None = None
    inverse_join_column : str | None = None
    fetch               : FetchType = FetchType.LAZY
    cascade             : bool = False
    orphan_removal      : bool = False
    collection          : type | None = None


@dataclass(frozen=True)
class Binding:
    table     : str | None
    identity  : Id | None
    columns   : tuple[Column, ...] = ()
    relations : tuple[Relation, ...] = ()
    schema    : str | None = None


def OneToOne(
    field       : str,
    target,
    join_column : str | None = None,
    mapped_by   : str | None = None,
    fetch       : FetchType  = FetchType.LAZY,
    cascade     : bool       = False,
) -> Relation:
    '''
    Owning side when ``mapped_by`` is not given (join column defaults to
    ``<field>_id``), inverse side otherwise.
    '''
    return Relation(
        RelationKind.ONE_TO_ONE,
        field,
        target,
        join_column=join_column,
        mapped_by=mapped_by,
        fetch=fetch,
        cascade=cascade,
    )

def ManyToOne(
    field       : str,
    target,
    join_column : str | None = None,
    fetch       : FetchType  = FetchType.LAZY,
    cascade     : bool       = False,
) -> Relation:
    return Relation(
        RelationKind.MANY_TO_ONE,
        field,
        target,
        join_column=join_column,
        fetch=fetch,
        cascade=cascade,
    )

def OneToMany(
    field          : str,
    target,
    mapped_by      : str,
    fetch          : FetchType   = FetchType.LAZY,
    cascade        : bool        = False,
    orphan_removal : bool        = False,
    collection     : type | None = None,
) -> Relation:
    return Relation(
        RelationKind.ONE_TO_MANY,
        field,
        target,
        mapped_by=mapped_by,
        fetch=fetch,
        cascade=cascade,
        orphan_removal=orphan_removal,
        collection=collection,
    )

def ManyToMany(
    field               : str,
    target,
    join_table          : str,
    join_column         : str,
    inverse_join_column : str,
    fetch               : FetchType   = FetchType.LAZY,
    cascade             : bool        = False,
    collection          : type | None = None,
) -> Relation:
    '''
    Parameters:
        join_table:          bridge table name
        join_column:         bridge column referencing the declaring entity's identity
        inverse_join_column: bridge column referencing the target entity's identity
    '''
    return Relation(
        RelationKind.MANY_TO_MANY,
        field,
        target,
        join_column=join_column,
        join_table=join_table,
        inverse_join_column=inverse_join_column,
        fetch=fetch,
        cascade=cascade,
        collection=collection,
    )


def entity(
    cls=None,
    *,
    table     : str | None = None,
    identity  : Id | str | None = None,
    columns   = (),
    relations = (),
    schema    : str | None = None,
):
    '''
    Entity decorator, attaching a ``Binding`` to the class as ``__binding__``.

    Columns may be given as ``Column`` instances or plain field names, and the identity
    as an ``Id`` or a field name (generated by the store).
    '''
    if isinstance(identity, str):
        identity = Id(identity)

    binding = Binding(
        table=table,
        identity=identity,
        columns=tuple(Column(c) if isinstance(c, str) else c for c in columns),
        relations=tuple(relations),
        schema=schema,
    )

    def decorator(cls):
        cls.__binding__ = binding
        return cls

    if cls is not None:
        return decorator(cls)

    return decorator
