'''
Small bookshop domain covering every relation kind.

CUSTOMER -< ORDER                       (many-to-one and one-to-many, both eager)
AUTHOR   -< BOOK                        (one-to-many, cascade + orphan removal)
AUTHOR   -- PROFILE                     (one-to-one, inverse on author)
BOOK     >-< TAG  through book_tags     (many-to-many, set collection)

Note: bridge rows in ``book_tags`` are never written by the runtime; tests insert them
with raw SQL. ``reviews`` has no entity and only exists to hold foreign keys onto books.
'''
import enum
import datetime as dt
from decimal import Decimal
from dataclasses import dataclass

import sqlalchemy as sa

from relmap import (
    entity,
    Id,
    Column,
    FetchType,
    OneToOne,
    OneToMany,
    ManyToOne,
    ManyToMany,
)


class Genre(enum.Enum):
    FICTION   = 'fiction'
    POETRY    = 'poetry'
    REFERENCE = 'reference'


@entity(
    table='customers',
    identity='id',
    columns=['name', 'email'],
    relations=[
        OneToMany('orders', target=lambda: Order, mapped_by='customer', fetch=FetchType.EAGER),
    ],
)
@dataclass(eq=False)
class Customer:
    id     : int | None = None
    name   : str | None = None
    email  : str | None = None
    orders : list['Order'] | None = None


@entity(
    table='orders',
    identity='id',
    columns=['total', 'status', 'placed_at', 'customer_id'],
    relations=[
        ManyToOne('customer', target=Customer, fetch=FetchType.EAGER),
    ],
)
@dataclass(eq=False)
class Order:
    id          : int | None = None
    total       : Decimal | None = None
    status      : str | None = None
    placed_at   : dt.datetime | None = None
    customer_id : int | None = None
    customer    : Customer | None = None


@entity(
    table='authors',
    identity='id',
    columns=['name'],
    relations=[
        OneToMany(
            'books',
            target=lambda: Book,
            mapped_by='author_id',
            cascade=True,
            orphan_removal=True,
        ),
        OneToOne('profile', target=lambda: Profile, mapped_by='author'),
    ],
)
@dataclass(eq=False)
class Author:
    id      : int | None = None
    name    : str | None = None
    books   : list['Book'] | None = None
    profile : 'Profile | None' = None


@entity(
    table='books',
    identity='id',
    columns=[
        'title',
        Column('genre', type=Genre),
        'published_on',
        'author_id',
    ],
    relations=[
        ManyToOne('author', target=Author),
        ManyToMany(
            'tags',
            target=lambda: Tag,
            join_table='book_tags',
            join_column='book_id',
            inverse_join_column='tag_id',
            cascade=True,
        ),
    ],
)
@dataclass(eq=False)
class Book:
    id           : int | None = None
    title        : str | None = None
    genre        : Genre | None = None
    published_on : dt.date | None = None
    author_id    : int | None = None
    author       : Author | None = None
    tags         : set['Tag'] | None = None


@entity(
    table='profiles',
    identity='id',
    columns=['bio', 'author_id'],
    relations=[
        OneToOne('author', target=Author, cascade=True),
    ],
)
@dataclass(eq=False)
class Profile:
    id        : int | None = None
    bio       : str | None = None
    author_id : int | None = None
    author    : Author | None = None


@entity(table='tags', identity='id', columns=['label'])
@dataclass(eq=False)
class Tag:
    id    : int | None = None
    label : str | None = None


@entity(table='counters', identity=Id('id'))
class Counter:
    '''
    Only a generated identity: nothing to insert.
    '''


@entity(table='isbns', identity=Id('code', generated=False), columns=['book_id'])
@dataclass(eq=False)
class Isbn:
    code    : str | None = None
    book_id : int | None = None


metadata = sa.MetaData()
customer_table = sa.Table(
    'customers',
    metadata,
    sa.Column('id',    sa.Integer, primary_key=True),
    sa.Column('name',  sa.String),
    sa.Column('email', sa.String),
)
order_table = sa.Table(
    'orders',
    metadata,
    sa.Column('id',          sa.Integer, primary_key=True),
    sa.Column('total',       sa.Numeric),
    sa.Column('status',      sa.String),
    sa.Column('placed_at',   sa.String),
    sa.Column('customer_id', sa.Integer, sa.ForeignKey('customers.id')),
)
author_table = sa.Table(
    'authors',
    metadata,
    sa.Column('id',   sa.Integer, primary_key=True),
    sa.Column('name', sa.String),
)
book_table = sa.Table(
    'books',
    metadata,
    sa.Column('id',           sa.Integer, primary_key=True),
    sa.Column('title',        sa.String, nullable=False),
    sa.Column('genre',        sa.String),
    sa.Column('published_on', sa.String),
    sa.Column('author_id',    sa.Integer, sa.ForeignKey('authors.id')),
)
profile_table = sa.Table(
    'profiles',
    metadata,
    sa.Column('id',        sa.Integer, primary_key=True),
    sa.Column('bio',       sa.String),
    sa.Column('author_id', sa.Integer, sa.ForeignKey('authors.id')),
)
tag_table = sa.Table(
    'tags',
    metadata,
    sa.Column('id',    sa.Integer, primary_key=True),
    sa.Column('label', sa.String, unique=True),
)
book_tag_table = sa.Table(
    'book_tags',
    metadata,
    sa.Column('book_id', sa.Integer, sa.ForeignKey('books.id'), primary_key=True),
    sa.Column('tag_id',  sa.Integer, sa.ForeignKey('tags.id'),  primary_key=True),
)
review_table = sa.Table(
    'reviews',
    metadata,
    sa.Column('id',      sa.Integer, primary_key=True),
    sa.Column('book_id', sa.Integer, sa.ForeignKey('books.id')),
    sa.Column('body',    sa.String),
)
counter_table = sa.Table(
    'counters',
    metadata,
    sa.Column('id', sa.Integer, primary_key=True),
)
isbn_table = sa.Table(
    'isbns',
    metadata,
    sa.Column('code',    sa.String, primary_key=True),
    sa.Column('book_id', sa.Integer, sa.ForeignKey('books.id')),
)
