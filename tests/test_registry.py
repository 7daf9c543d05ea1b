import threading

import pytest

from relmap import (
    entity,
    Binding,
    Id,
    Column,
    Registry,
    RelationKind,
    ConfigurationError,
    OneToOne,
    OneToMany,
    ManyToMany,
)
from relmap.util.convert import ConversionTag

from setups import shop


def test_resolve_idempotent():
    registry = Registry()

    first = registry.resolve(shop.Order)
    assert registry.resolve(shop.Order) is first
    assert shop.Order in registry
    assert len(registry) == 1

def test_resolve_concurrent_builds_once(monkeypatch):
    registry = Registry()
    build = registry._build
    calls = []

    def counting_build(type_ref):
        calls.append(type_ref)
        return build(type_ref)

    monkeypatch.setattr(registry, '_build', counting_build)

    barrier = threading.Barrier(8)
    results = []

    def resolve():
        barrier.wait()
        results.append(registry.resolve(shop.Book))

    threads = [threading.Thread(target=resolve) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == [shop.Book]
    assert len(results) == 8
    assert all(r is results[0] for r in results)

def test_descriptor_layout():
    descriptor = Registry().resolve(shop.Order)

    assert descriptor.table == 'orders'
    assert descriptor.identity.name == 'id'
    assert descriptor.identity.generated
    assert descriptor.column_names == ['id', 'total', 'status', 'placed_at', 'customer_id']
    assert descriptor.column('total').tag is ConversionTag.DECIMAL
    assert descriptor.column('placed_at').tag is ConversionTag.DATETIME

    customer = descriptor.relation('customer')
    assert customer.kind is RelationKind.MANY_TO_ONE
    assert customer.owning
    assert customer.eager
    assert customer.join_column == 'customer_id'
    assert descriptor.eager_relations == [customer]

def test_collection_kinds():
    registry = Registry()

    assert registry.resolve(shop.Book).relation('tags').collection_kind is set
    assert registry.resolve(shop.Author).relation('books').collection_kind is list

def test_explicit_bind_and_schema():
    class Note:
        pass

    registry = Registry(default_schema='main')
    registry.bind(Note, Binding(table=None, identity=Id('id'), columns=(Column('body'),)))

    descriptor = registry.resolve(Note)
    assert descriptor.table == 'main.note'
    assert descriptor.column_names == ['id', 'body']

    with pytest.raises(ConfigurationError):
        registry.bind(Note, Binding(table='notes', identity=Id('id')))

def test_clear():
    registry = Registry()
    first = registry.resolve(shop.Tag)

    registry.clear()
    assert len(registry) == 0
    assert registry.resolve(shop.Tag) is not first

def test_unbound_type():
    class Loose:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Loose)

def test_missing_identity():
    @entity(table='things', columns=['name'])
    class Thing:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Thing)

def test_duplicate_column():
    @entity(table='things', identity='id', columns=['name', Column('label', column='name')])
    class Thing:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Thing)

def test_unmapped_join_column():
    @entity(
        table='things',
        identity='id',
        relations=[OneToOne('owner', target=shop.Author)],
    )
    class Thing:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Thing)

def test_one_to_one_join_column_and_mapped_by():
    @entity(
        table='things',
        identity='id',
        columns=['owner_id'],
        relations=[
            OneToOne('owner', target=shop.Author, join_column='owner_id', mapped_by='thing'),
        ],
    )
    class Thing:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Thing)

def test_one_to_many_requires_mapped_by():
    @entity(
        table='things',
        identity='id',
        relations=[OneToMany('parts', target=shop.Book, mapped_by=None)],
    )
    class Thing:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Thing)

def test_many_to_many_requires_bridge():
    @entity(
        table='things',
        identity='id',
        relations=[
            ManyToMany(
                'tags',
                target=shop.Tag,
                join_table='thing_tags',
                join_column='thing_id',
                inverse_join_column=None,
            ),
        ],
    )
    class Thing:
        pass

    with pytest.raises(ConfigurationError):
        Registry().resolve(Thing)
