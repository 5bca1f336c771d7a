"""
ORM guard keeping the stock change log append-only.

Listeners fire before SQLAlchemy sends an UPDATE or DELETE for a
StockChangeLog row and abort the flush, so the surrounding transaction rolls
back and nothing reaches the database.

    register_append_only_listeners()    # once, at application import
    unregister_append_only_listeners()  # tests only
"""

import logging

from sqlalchemy import event

from core.errors import AppendOnlyViolationError
from db.stock_change_log import StockChangeLog

logger = logging.getLogger(__name__)


def _block_stock_change_log_update(mapper, connection, target):
    logger.error("Blocked UPDATE of stock change log %s", target.id)
    raise AppendOnlyViolationError("StockChangeLog", str(target.id), "UPDATE")


def _block_stock_change_log_delete(mapper, connection, target):
    logger.error("Blocked DELETE of stock change log %s", target.id)
    raise AppendOnlyViolationError("StockChangeLog", str(target.id), "DELETE")


_LISTENERS = (
    ("before_update", _block_stock_change_log_update),
    ("before_delete", _block_stock_change_log_delete),
)


def register_append_only_listeners() -> None:
    for name, fn in _LISTENERS:
        if not event.contains(StockChangeLog, name, fn):
            event.listen(StockChangeLog, name, fn)


def unregister_append_only_listeners() -> None:
    for name, fn in _LISTENERS:
        if event.contains(StockChangeLog, name, fn):
            event.remove(StockChangeLog, name, fn)
