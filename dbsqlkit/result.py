"""Outcome of a statement that returns no rows."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Result:
    """Rows affected by a statement.

    The server does not report generated ids, so last_insert_id stays 0.
    """

    rows_affected: int = 0
    last_insert_id: int = 0