"""
Record store exceptions.

Handlers only ever see these two types. The SQLAlchemy exception that
caused them is chained as ``__cause__`` and is what gets logged.

    StoreError            a statement failed (insert, select, DDL)
    └── StoreUnavailable  no connection could be obtained
"""


class StoreError(Exception):
    """A statement against the record store failed."""


class StoreUnavailable(StoreError):
    """The record store could not be reached."""
