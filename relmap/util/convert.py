'''
Value conversion between Python values and their stored representation.

Bind-time conversion (``to_store``) dispatches on the runtime type of the bound value,
since builder parameters are not tied to any descriptor. Read-time conversion
(``from_store``) instead dispatches on a ``ConversionTag`` fixed for each column when its
descriptor is built, so no per-row type inspection of the target field takes place.

Stored representations (SQLite):
    - datetime -> 'YYYY-MM-DD HH:MM:SS[.ffffff]'
    - date     -> 'YYYY-MM-DD'
    - time     -> 'HH:MM:SS[.ffffff]'
    - Enum     -> member name
    - Decimal  -> decimal string
    - None     -> NULL
'''
import enum
import datetime as dt
from decimal import Decimal
from typing import get_origin
from functools import singledispatch


class ConversionTag(enum.Enum):
    PLAIN    = 'plain'
    DATETIME = 'datetime'
    DATE     = 'date'
    TIME     = 'time'
    ENUM     = 'enum'
    DECIMAL  = 'decimal'
    BOOL     = 'bool'


def tag_for(py_type) -> ConversionTag:
    '''
    Conversion tag for a declared field type. Optional types (``X | None``) resolve to
    the tag of ``X``.
    '''
    args = getattr(py_type, '__args__', None)
    if args is not None and type(None) in args:
        non_null = [a for a in args if a is not type(None)]
        if len(non_null) == 1:
            py_type = non_null[0]

    if get_origin(py_type) is not None or not isinstance(py_type, type):
        return ConversionTag.PLAIN

    # datetime is a date subclass; check it first
    if issubclass(py_type, dt.datetime):
        return ConversionTag.DATETIME
    if issubclass(py_type, dt.date):
        return ConversionTag.DATE
    if issubclass(py_type, dt.time):
        return ConversionTag.TIME
    if issubclass(py_type, enum.Enum):
        return ConversionTag.ENUM
    if issubclass(py_type, Decimal):
        return ConversionTag.DECIMAL
    if issubclass(py_type, bool):
        return ConversionTag.BOOL

    return ConversionTag.PLAIN


@singledispatch
def to_store(value):
    return value

@to_store.register
def _(value: dt.datetime):
    return value.isoformat(sep=' ')

@to_store.register
def _(value: dt.date):
    return value.isoformat()

@to_store.register
def _(value: dt.time):
    return value.isoformat()

@to_store.register
def _(value: enum.Enum):
    return value.name

@to_store.register
def _(value: Decimal):
    return str(value)


def from_store(value, tag: ConversionTag, py_type=None):
    '''
    Convert a raw stored value to the field's declared type. ``py_type`` is required
    only for ``ConversionTag.ENUM`` (the enum class); enums are matched by member name,
    or by ordinal position in the declared member order when stored as an integer.
    '''
    if value is None or tag is ConversionTag.PLAIN:
        return value

    if tag is ConversionTag.DATETIME:
        if isinstance(value, dt.datetime):
            return value
        return dt.datetime.fromisoformat(str(value))

    if tag is ConversionTag.DATE:
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, dt.date):
            return value
        return dt.date.fromisoformat(str(value)[:10])

    if tag is ConversionTag.TIME:
        if isinstance(value, dt.time):
            return value
        return dt.time.fromisoformat(str(value))

    if tag is ConversionTag.ENUM:
        if isinstance(value, py_type):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if value < 0:
                raise ValueError(f'Negative ordinal {value} for enum {py_type.__name__}')
            return list(py_type)[value]
        return py_type[value]

    if tag is ConversionTag.DECIMAL:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))

    if tag is ConversionTag.BOOL:
        return bool(value)

    return value
