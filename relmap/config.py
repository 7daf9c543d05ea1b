'''
Data source configuration for the pooled store connection.

Defaults follow common pool settings: ten connections, a 30 second checkout timeout, ten
minute idle eviction and thirty minute maximum connection lifetime. Timeouts are
expressed in seconds.
'''
import os
from dataclasses import dataclass, fields

import sqlalchemy as sa
from sqlalchemy.engine import make_url

from relmap.errors import ConfigurationError


@dataclass(frozen=True)
class DataSourceConfig:
    url                : str
    username           : str | None = None
    password           : str | None = None
    schema             : str | None = None

    max_pool_size      : int   = 10
    min_idle           : int   = 5
    connection_timeout : float = 30.0
    idle_timeout       : float = 600.0
    max_lifetime       : float = 1800.0

    echo               : bool  = False

    @classmethod
    def from_env(cls, prefix: str = 'RELMAP_', environ=None):
        '''
        Build a config from environment variables, e.g. ``RELMAP_URL``,
        ``RELMAP_MAX_POOL_SIZE``. Only ``<prefix>URL`` is required.
        '''
        if environ is None:
            environ = os.environ

        values = {}
        for f in fields(cls):
            raw = environ.get(f'{prefix}{f.name.upper()}')
            if raw is None:
                continue

            if f.type in ('int', int):
                values[f.name] = int(raw)
            elif f.type in ('float', float):
                values[f.name] = float(raw)
            elif f.type in ('bool', bool):
                values[f.name] = raw.strip().lower() in ('1', 'true', 'yes', 'on')
            else:
                values[f.name] = raw

        if 'url' not in values:
            raise ConfigurationError(f'Environment variable "{prefix}URL" is not set')

        return cls(**values)

    def sa_url(self) -> sa.URL:
        '''
        Store URL with credentials merged in. Credentials already present in ``url``
        are kept unless explicitly overridden.
        '''
        url = make_url(self.url)

        overrides = {}
        if self.username is not None:
            overrides['username'] = self.username
        if self.password is not None:
            overrides['password'] = self.password

        if overrides:
            url = url.set(**overrides)

        return url

    def engine_kwargs(self) -> dict:
        '''
        Translate pool settings to ``sa.create_engine`` keyword arguments. The pool
        holds ``min_idle`` persistent connections and may overflow up to
        ``max_pool_size``.
        '''
        pool_size = max(1, min(self.min_idle, self.max_pool_size))

        return {
            'echo'          : self.echo,
            'pool_size'     : pool_size,
            'max_overflow'  : max(0, self.max_pool_size - pool_size),
            'pool_timeout'  : self.connection_timeout,
            'pool_recycle'  : int(self.max_lifetime),
            'pool_pre_ping' : True,
        }
