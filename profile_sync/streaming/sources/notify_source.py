"""
PostgreSQL LISTEN/NOTIFY source of profile change events.

The trigger on public_profiles publishes key-only notifications; this source
turns them into ChangeEvents, reading inserted and updated documents back
from the source table so redelivered events always project the latest
committed state.
"""

import json
from collections.abc import Callable, Iterator

from psycopg import sql

from profile_sync.core.models import ChangeEvent, SourceRecord
from profile_sync.observability.logger import get_logger
from profile_sync.warehouse.connection import DatabaseConnectionPool

logger = get_logger(__name__)

OPERATIONS = {"insert", "update", "delete"}


def parse_notification(
    payload: str,
    fetch: Callable[[str], SourceRecord | None],
) -> ChangeEvent | None:
    """
    Convert a notification payload into a ChangeEvent.

    Args:
        payload: JSON payload {op, id, document_id, updated_at}
        fetch: Returns the committed source row for a key, or None

    Returns:
        ChangeEvent, or None when the payload is unusable or the row has
        already been deleted (its delete notification follows)
    """
    try:
        message = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring malformed change notification: {e}", extra={"payload": payload})
        return None

    if not isinstance(message, dict) or message.get("op") not in OPERATIONS:
        logger.warning("Ignoring change notification without a known op", extra={"payload": payload})
        return None

    operation = message["op"]
    key = message.get("id")

    if operation == "delete":
        document_id = message.get("document_id")
        return ChangeEvent(
            operation="delete",
            record=SourceRecord(
                key=key,
                document={"id": document_id} if document_id else None,
            ),
        )

    if key is None:
        return ChangeEvent(operation=operation, record=SourceRecord())

    record = fetch(str(key))
    if record is None:
        logger.debug(f"Source row {key} is gone, waiting for its delete", extra={"key": key})
        return None
    return ChangeEvent(operation=operation, record=record)


class PostgresNotifySource:
    """
    Yields ChangeEvents from a LISTEN session on a dedicated connection.

    Notifications arrive in commit order, which gives per-key ordering.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        channel: str = "profile_changes",
        fetch: Callable[[str], SourceRecord | None] | None = None,
    ):
        """
        Initialize notify source.

        Args:
            pool: Database connection pool (provides conninfo and reads)
            channel: NOTIFY channel published by the source trigger
            fetch: Source row lookup (defaults to SourceTableReader.fetch)
        """
        self.pool = pool
        self.channel = channel
        if fetch is None:
            from profile_sync.batch.readers.postgres_reader import SourceTableReader

            fetch = SourceTableReader(pool).fetch
        self.fetch = fetch

    def events(
        self,
        timeout: float | None = None,
        stop_after: int | None = None,
        keep_running: Callable[[], bool] | None = None,
        poll_interval: float = 5.0,
    ) -> Iterator[ChangeEvent]:
        """
        Listen and yield change events.

        Args:
            timeout: Stop after this many seconds (None listens forever)
            stop_after: Stop after this many notifications
            keep_running: When given, listen in poll_interval windows on the
                same connection until it returns False (timeout is ignored)
            poll_interval: Window length used with keep_running

        Yields:
            ChangeEvent per usable notification
        """
        conn = self.pool.connect_autocommit()
        try:
            conn.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel)))
            logger.info(f"Listening for profile changes on '{self.channel}'")

            if keep_running is None:
                for notify in conn.notifies(timeout=timeout, stop_after=stop_after):
                    event = parse_notification(notify.payload, self.fetch)
                    if event is not None:
                        yield event
                return

            while keep_running():
                for notify in conn.notifies(timeout=poll_interval, stop_after=stop_after):
                    event = parse_notification(notify.payload, self.fetch)
                    if event is not None:
                        yield event
                    if not keep_running():
                        break
        finally:
            conn.close()
