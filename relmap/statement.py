'''
Statement

Fluent builders for SELECT, INSERT, UPDATE and DELETE statements, each producing an
immutable ``StatementSpec``: SQL text with positional (``?``) placeholders and the
ordered parameter list bound to them.

Builders may be called in any order; clauses are emitted in canonical SQL order when
``build()`` is called, and parameters are collected in exactly that emission order, so a
StatementSpec's parameter list always lines up with its placeholders.

.. code-block:: python

    spec = (
        select('t.*')
        .from_('books t')
        .inner_join('book_tags j', 't.id = j.book_id')
        .where({'j.tag_id': 3, 'deleted_at': None})
        .order_by('t.title')
        .limit(10)
        .build()
    )
    spec.sql    # SELECT t.* FROM books t INNER JOIN book_tags j ON t.id = j.book_id
                #   WHERE j.tag_id = ? AND deleted_at IS NULL ORDER BY t.title LIMIT ?
    spec.params # (3, 10)

Parameter values are converted to their stored representation as they are bound (see
``relmap.util.convert.to_store``).
'''
import enum
from typing import Any
from dataclasses import dataclass

from relmap.errors import ValidationError
from relmap.util.convert import to_store


PLACEHOLDER = '?'

COMPARATORS = ('=', '!=', '<>', '<', '<=', '>', '>=', 'LIKE', 'NOT LIKE')


def _check_placeholders(fragment: str, params: tuple):
    '''
    Raw SQL fragments must carry exactly one parameter per ``?`` placeholder.
    '''
    expected = fragment.count(PLACEHOLDER)
    if expected != len(params):
        raise ValidationError(
            f'"{fragment}" has {expected} placeholders but {len(params)} parameters'
        )


class StatementKind(enum.Enum):
    SELECT = 'SELECT'
    INSERT = 'INSERT'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'


@dataclass(frozen=True)
class Predicate:
    '''
    Single WHERE condition: ``column <comparator> ?``, ``column IS [NOT] NULL``, or a
    custom SQL fragment carrying its own positional parameters.
    '''
    column     : str | None
    comparator : str
    value      : Any = None
    sql        : str | None = None
    params     : tuple = ()

    def render(self, params: list) -> str:
        if self.sql is not None:
            params.extend(self.params)
            return self.sql

        if self.comparator in ('IS NULL', 'IS NOT NULL'):
            return f'{self.column} {self.comparator}'

        params.append(self.value)
        return f'{self.column} {self.comparator} {PLACEHOLDER}'


@dataclass(frozen=True)
class Join:
    kind   : str
    table  : str
    on     : str
    params : tuple = ()


@dataclass(frozen=True)
class StatementSpec:
    kind       : StatementKind
    table      : str
    columns    : tuple[str, ...]
    predicates : tuple[Predicate, ...]
    joins      : tuple[Join, ...]
    group_by   : tuple[str, ...]
    having     : str | None
    order_by   : tuple[str, ...]
    limit      : int | None
    offset     : int | None
    returning  : tuple[str, ...]
    sql        : str
    params     : tuple

    def __str__(self):
        return self.sql


class _Builder:
    kind: StatementKind

    def __init__(self, table: str | None = None):
        self._table      = table
        self._predicates = []
        self._returning  = ()

    def where(self, conditions: dict | None = None, **kwargs):
        '''
        Add ANDed equality conditions. ``None`` values become ``IS NULL`` tests.
        '''
        conditions = {**(conditions or {}), **kwargs}
        for column, value in conditions.items():
            self.filter(column, '=', value)
        return self

    def filter(self, column: str, comparator: str, value):
        comparator = comparator.upper()
        if comparator not in COMPARATORS:
            raise ValidationError(f'Unsupported comparator "{comparator}"')

        if value is None:
            if comparator == '=':
                self._predicates.append(Predicate(column, 'IS NULL'))
                return self
            if comparator in ('!=', '<>'):
                self._predicates.append(Predicate(column, 'IS NOT NULL'))
                return self
            raise ValidationError(f'Cannot compare "{column}" {comparator} NULL')

        self._predicates.append(Predicate(column, comparator, value))
        return self

    def where_custom(self, condition: str, *params):
        '''
        Add a raw SQL condition; ``params`` bind to its ``?`` placeholders in order.
        '''
        if not condition or not condition.strip():
            raise ValidationError('Custom condition cannot be empty')
        _check_placeholders(condition, params)

        self._predicates.append(Predicate(None, 'CUSTOM', sql=condition, params=params))
        return self

    def returning(self, *columns: str):
        self._returning = tuple(columns)
        return self

    def _require_table(self):
        if not self._table:
            raise ValidationError(f'{self.kind.value} statement has no target table')

    def _render_where(self, parts: list, params: list):
        if not self._predicates:
            return
        rendered = [p.render(params) for p in self._predicates]
        parts.append('WHERE ' + ' AND '.join(rendered))

    def _render_returning(self, parts: list):
        if self._returning:
            parts.append('RETURNING ' + ', '.join(self._returning))

    def _spec(self, sql: str, params: list, **clauses) -> StatementSpec:
        spec_fields = {
            'columns'  : (),
            'joins'    : (),
            'group_by' : (),
            'having'   : None,
            'order_by' : (),
            'limit'    : None,
            'offset'   : None,
        }
        spec_fields.update(clauses)

        return StatementSpec(
            kind       = self.kind,
            table      = self._table,
            predicates = tuple(self._predicates),
            returning  = self._returning,
            sql        = sql,
            params     = tuple(to_store(p) for p in params),
            **spec_fields,
        )

    def build(self) -> StatementSpec:
        raise NotImplementedError


class Select(_Builder):
    kind = StatementKind.SELECT

    def __init__(self, *columns: str):
        super().__init__()
        self._columns  = tuple(columns)
        self._joins    = []
        self._group_by = ()
        self._having   = None
        self._having_params = ()
        self._order_by = []
        self._limit    = None
        self._offset   = None

    def columns(self, *columns: str):
        self._columns = tuple(columns)
        return self

    def from_(self, table: str):
        self._table = table
        return self

    def join(self, kind: str, table: str, on: str, *params):
        _check_placeholders(on, params)
        self._joins.append(Join(kind.upper(), table, on, params))
        return self

    def inner_join(self, table: str, on: str, *params):
        return self.join('INNER', table, on, *params)

    def left_join(self, table: str, on: str, *params):
        return self.join('LEFT', table, on, *params)

    def group_by(self, *columns: str):
        self._group_by = tuple(columns)
        return self

    def having(self, condition: str, *params):
        _check_placeholders(condition, params)
        self._having = condition
        self._having_params = params
        return self

    def order_by(self, column: str, ascending: bool = True):
        self._order_by.append(column if ascending else f'{column} DESC')
        return self

    def limit(self, limit: int):
        if limit < 0:
            raise ValidationError(f'LIMIT must be non-negative, got {limit}')
        self._limit = limit
        return self

    def offset(self, offset: int):
        if offset < 0:
            raise ValidationError(f'OFFSET must be non-negative, got {offset}')
        self._offset = offset
        return self

    def build(self) -> StatementSpec:
        self._require_table()

        params = []
        parts = [
            'SELECT ' + (', '.join(self._columns) if self._columns else '*'),
            f'FROM {self._table}',
        ]

        for join in self._joins:
            parts.append(f'{join.kind} JOIN {join.table} ON {join.on}')
            params.extend(join.params)

        self._render_where(parts, params)

        if self._group_by:
            parts.append('GROUP BY ' + ', '.join(self._group_by))

        if self._having is not None:
            parts.append(f'HAVING {self._having}')
            params.extend(self._having_params)

        if self._order_by:
            parts.append('ORDER BY ' + ', '.join(self._order_by))

        if self._limit is not None:
            parts.append(f'LIMIT {PLACEHOLDER}')
            params.append(self._limit)

        if self._offset is not None:
            # SQLite only accepts OFFSET after a LIMIT; -1 means no limit
            if self._limit is None:
                parts.append(f'LIMIT {PLACEHOLDER}')
                params.append(-1)
            parts.append(f'OFFSET {PLACEHOLDER}')
            params.append(self._offset)

        return self._spec(
            ' '.join(parts),
            params,
            columns  = self._columns,
            joins    = tuple(self._joins),
            group_by = self._group_by,
            having   = self._having,
            order_by = tuple(self._order_by),
            limit    = self._limit,
            offset   = self._offset,
        )


class Insert(_Builder):
    kind = StatementKind.INSERT

    def __init__(self, table: str | None = None):
        super().__init__(table)
        self._values = None

    def into(self, table: str):
        self._table = table
        return self

    def values(self, column_values: dict):
        if not column_values:
            raise ValidationError('INSERT column-value set cannot be empty')
        self._values = dict(column_values)
        return self

    def where(self, *args, **kwargs):
        raise ValidationError('INSERT statements take no WHERE clause')

    filter = where_custom = where

    def build(self) -> StatementSpec:
        self._require_table()
        if not self._values:
            raise ValidationError('INSERT column-value set cannot be empty')

        columns = tuple(self._values)
        params = [self._values[c] for c in columns]

        parts = [
            f'INSERT INTO {self._table}',
            '(' + ', '.join(columns) + ')',
            'VALUES (' + ', '.join(PLACEHOLDER for _ in columns) + ')',
        ]
        self._render_returning(parts)

        return self._spec(' '.join(parts), params, columns=columns)


class Update(_Builder):
    kind = StatementKind.UPDATE

    def __init__(self, table: str | None = None):
        super().__init__(table)
        self._values = None

    def table(self, table: str):
        self._table = table
        return self

    def set(self, column_values: dict):
        if not column_values:
            raise ValidationError('UPDATE column-value set cannot be empty')
        self._values = dict(column_values)
        return self

    def build(self) -> StatementSpec:
        self._require_table()
        if not self._values:
            raise ValidationError('UPDATE column-value set cannot be empty')

        columns = tuple(self._values)
        params = [self._values[c] for c in columns]

        parts = [
            f'UPDATE {self._table}',
            'SET ' + ', '.join(f'{c} = {PLACEHOLDER}' for c in columns),
        ]
        self._render_where(parts, params)
        self._render_returning(parts)

        return self._spec(' '.join(parts), params, columns=columns)


class Delete(_Builder):
    kind = StatementKind.DELETE

    def from_(self, table: str):
        self._table = table
        return self

    def build(self) -> StatementSpec:
        self._require_table()

        params = []
        parts = [f'DELETE FROM {self._table}']
        self._render_where(parts, params)
        self._render_returning(parts)

        return self._spec(' '.join(parts), params)


def select(*columns: str) -> Select:
    return Select(*columns)

def insert(table: str | None = None) -> Insert:
    return Insert(table)

def update(table: str | None = None) -> Update:
    return Update(table)

def delete(table: str | None = None) -> Delete:
    return Delete(table)
