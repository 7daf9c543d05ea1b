import pytest

from relmap import Database
from relmap.util import db as db_util

from setups import shop


@pytest.fixture
def database(tmp_path):
    '''
    Fresh file-backed database with the shop schema created.
    '''
    database = Database(db_util.sqlite_url(tmp_path / 'shop.db'))
    shop.metadata.create_all(database.engine.manager)

    yield database

    database.close()
