"""Open a :class:`~rowgate.driver.Driver` from a SQLAlchemy URL.

SQLAlchemy is used only to resolve the URL to a DB-API module and open one
raw connection; statements are still built and executed by the Driver.
The engine uses ``NullPool`` so closing the Driver closes the connection.
"""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.engine import make_url
from sqlalchemy.pool import NullPool

from rowgate.config import Settings, get_settings
from rowgate.driver import Driver
from rowgate.exceptions import DriverError
from rowgate.logging import get_logger
from rowgate.types import FetchMode

log = get_logger(__name__)


def open_driver(
    url: str | None = None,
    *,
    settings: Settings | None = None,
    fetch_mode: FetchMode | str | None = None,
) -> Driver:
    """Connect to *url* (default: ``settings.database.url``).

    Examples::

        open_driver("sqlite:///app.db")
        open_driver("mysql+mysqlconnector://user:pw@localhost/app")
    """
    db_config = (settings or get_settings()).database
    sa_url = make_url(url or db_config.url)

    engine = sa.create_engine(sa_url, poolclass=NullPool)
    try:
        raw = engine.raw_connection()
    except sa.exc.DBAPIError as exc:
        raise DriverError(
            f"Failed to connect to {sa_url.render_as_string(hide_password=True)}: {exc.orig}",
            context={"dialect": engine.dialect.name, "database": sa_url.database},
        ) from exc

    log.info(
        "driver_opened",
        dialect=engine.dialect.name,
        database=sa_url.database,
        paramstyle=engine.dialect.paramstyle,
    )
    return Driver(
        raw,
        dialect=engine.dialect.name,
        paramstyle=engine.dialect.paramstyle,
        fetch_mode=fetch_mode or db_config.fetch_mode,
    )
