import datetime as dt
from decimal import Decimal

import pytest

from relmap.util.convert import ConversionTag, tag_for, to_store, from_store

from setups import shop


@pytest.mark.parametrize('py_type, tag', [
    (int,                ConversionTag.PLAIN),
    (str | None,         ConversionTag.PLAIN),
    (dt.datetime,        ConversionTag.DATETIME),
    (dt.date | None,     ConversionTag.DATE),
    (dt.time,            ConversionTag.TIME),
    (shop.Genre | None,  ConversionTag.ENUM),
    (Decimal,            ConversionTag.DECIMAL),
    (bool,               ConversionTag.BOOL),
    (list[int],          ConversionTag.PLAIN),
    (None,               ConversionTag.PLAIN),
])
def test_tag_for(py_type, tag):
    assert tag_for(py_type) is tag

def test_to_store():
    assert to_store(dt.datetime(2024, 3, 1, 9, 30)) == '2024-03-01 09:30:00'
    assert to_store(dt.date(2024, 3, 1)) == '2024-03-01'
    assert to_store(shop.Genre.POETRY) == 'POETRY'
    assert to_store(Decimal('1.50')) == '1.50'
    assert to_store(7) == 7
    assert to_store(None) is None

def test_from_store_temporal():
    assert from_store('2024-03-01 09:30:00', ConversionTag.DATETIME) == dt.datetime(2024, 3, 1, 9, 30)
    assert from_store('2024-03-01', ConversionTag.DATE) == dt.date(2024, 3, 1)
    assert from_store('09:30:00', ConversionTag.TIME) == dt.time(9, 30)

def test_from_store_enum():
    assert from_store('REFERENCE', ConversionTag.ENUM, shop.Genre) is shop.Genre.REFERENCE
    assert from_store(1, ConversionTag.ENUM, shop.Genre) is shop.Genre.POETRY

    with pytest.raises(ValueError):
        from_store(-1, ConversionTag.ENUM, shop.Genre)

def test_from_store_passthrough():
    assert from_store(None, ConversionTag.DATETIME) is None
    assert from_store('x', ConversionTag.PLAIN) == 'x'
    assert from_store(1, ConversionTag.BOOL) is True
    assert from_store(2.5, ConversionTag.DECIMAL) == Decimal('2.5')
