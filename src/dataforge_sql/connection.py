"""
Connection - wire a dialect, a client, a query builder and a Db facade
"""

from typing import Union

from .db import Db
from .dialects.factory import DialectFactory
from .query.debugger import DebugMode
from .query_builder import QueryBuilder
from .settings import ConnectionSettings

import logging
logger = logging.getLogger(__name__)


def connect(settings: Union[ConnectionSettings, str],
            debug: Union[DebugMode, bool, str] = False) -> Db:
    """
    Open a database and return its facade.

    Args:
        settings: ConnectionSettings or a ``driver://...`` URL
        debug: Default debug mode of the query builder

    Returns:
        Db bound to a new connection

    Raises:
        UnsupportedDialectError: If the driver name is unknown
        DatabaseConnectionError: If the driver is missing or connect fails
    """
    if isinstance(settings, str):
        settings = ConnectionSettings.from_url(settings)

    dialect = DialectFactory.create(settings.driver)
    client = dialect.connect(settings)
    logger.debug(f"Using {dialect.name} dialect for {settings.database}")
    return Db(QueryBuilder(dialect, client, debug=debug))
