'''
Materializer

Converts store rows into entity instances (through a descriptor) or into raw ordered
column-to-value mappings. Every call produces fresh instances; there is no identity map,
so two fetches of the same row yield two distinct objects.

Columns are matched to fields by column name. Projected columns the descriptor doesn't
map are ignored, and declared columns absent from the projection are left as ``None``.
'''
from relmap.util import db
from relmap.descriptor import EntityDescriptor


class Materializer:
    def materialize_one(self, result, descriptor: EntityDescriptor):
        '''
        Consume only the first row of ``result``, producing an entity or ``None``.
        '''
        columns = db.result_columns(result)
        if not columns:
            return None

        row = result.fetchone()
        if row is None:
            return None

        return self._entity(columns, row, descriptor)

    def materialize_all(self, result, descriptor: EntityDescriptor) -> list:
        '''
        Consume every remaining row of ``result``.
        '''
        columns = db.result_columns(result)
        if not columns:
            return []

        return [self._entity(columns, row, descriptor) for row in result]

    def materialize_raw(self, result) -> list[dict]:
        '''
        Ordered column-to-value mappings for ad-hoc queries. When a projection repeats a
        column name, the last occurrence wins.
        '''
        columns = db.result_columns(result)
        if not columns:
            return []

        return [dict(zip(columns, row)) for row in result]

    @staticmethod
    def _entity(columns: list[str], row, descriptor: EntityDescriptor):
        entity = descriptor.instantiate()

        for name, value in zip(columns, row):
            column = descriptor.column(name)
            if column is None:
                continue
            column.write(entity, value)

        return entity
