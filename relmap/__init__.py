'''
relmap: a lightweight relational-mapping runtime.

Entity types are bound to tables declaratively (``entity``, ``Id``, ``Column`` and the
relation helpers), compiled into immutable descriptors by a ``Registry``, and read and
written through a ``Database``, which issues positional SQL, materializes rows into
fresh entity instances and expands or cascades across declared relations, one
transaction per call.
'''
from relmap.errors import (
    RelmapError,
    ConfigurationError,
    ValidationError,
    ExecutionError,
    ResourceError,
)
from relmap.descriptor import (
    RelationKind,
    FetchType,
    EntityDescriptor,
    ColumnDescriptor,
    IdentityDescriptor,
    RelationDescriptor,
)
from relmap.binding import (
    entity,
    Binding,
    Id,
    Column,
    Relation,
    OneToOne,
    OneToMany,
    ManyToOne,
    ManyToMany,
)
from relmap.config    import DataSourceConfig
from relmap.registry  import Registry
from relmap.statement import StatementSpec, StatementKind, select, insert, update, delete
from relmap.materializer import Materializer
from relmap.transaction  import TransactionCoordinator
from relmap.relations    import RelationResolver
from relmap.engine    import SQLEngine
from relmap.accessor  import Accessor
from relmap.manager   import Manager
from relmap.database  import Database, Session
