'''
Small helpers over SQLAlchemy results and URLs.

Example usage:

# file-backed SQLite URL, creating the folder hierarchy to the provided path
url = db.sqlite_url(<path>)

# column names of a cursor result
cols = db.result_columns(result)
'''
from pathlib import Path

import sqlalchemy as sa


def sqlite_url(db_path) -> str:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return f'sqlite:///{db_path}'

def is_memory_url(url: sa.URL) -> bool:
    return url.get_backend_name() == 'sqlite' and url.database in (None, '', ':memory:')

def result_columns(result) -> list[str]:
    '''
    Column names of a cursor result, in projection order. Results that return no rows
    (e.g., plain UPDATEs) have no columns.
    '''
    if not result.returns_rows:
        return []
    return list(result.keys())

