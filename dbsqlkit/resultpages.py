"""Iteration over the pages of a query's result set."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Sequence

from .logger import with_context
from .rowscanner import Delimiter, Direction

ERR_RESULT_FETCH_FAILED = "databricks: Rows instance failed to retrieve results"
ERR_FETCH_PRIOR_TO_START = "databricks: unable to fetch row page prior to start of results"


def _unhandled_direction(direction: Direction) -> str:
    return f"databricks: unhandled fetch direction {direction}"


class DriverError(Exception):
    """An error detected by the driver itself."""

    def __init__(self, message: str) -> None:
        super().__init__(f"databricks: driver error: {message}")
        self.reason = message


class RequestError(Exception):
    """A request to the server failed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        text = f"databricks: request error: {message}"
        if cause is not None:
            text += f": {cause}"
        super().__init__(text)
        self.reason = message
        self.cause = cause


class FetchOrientation(IntEnum):
    """Which way the server should move when fetching a result page."""

    FETCH_NEXT = 0
    FETCH_PRIOR = 1


@dataclass
class RowSet:
    """Rows of one result page.

    columns holds the values of each column; arrow_batches and result_links
    hold the row count of each batch or link.
    """

    start_row_offset: int = 0
    columns: Optional[Sequence[Optional[Sequence[Any]]]] = None
    arrow_batches: Optional[Sequence[int]] = None
    result_links: Optional[Sequence[int]] = None


@dataclass
class FetchPage:
    """One page of results as returned by the server."""

    results: Optional[RowSet] = None
    has_more_rows: Optional[bool] = None


class _Exhausted(Exception):
    """No more pages."""


def count_rows(row_set: Optional[RowSet]) -> int:
    """Number of rows in the row set."""
    if row_set is None:
        return 0
    if row_set.arrow_batches is not None:
        return sum(row_set.arrow_batches)
    if row_set.result_links is not None:
        return sum(row_set.result_links)
    for column in row_set.columns or ():
        if column is not None:
            return len(column)
    return 0


def _to_orientation(direction: Direction) -> FetchOrientation:
    if direction == Direction.BACK:
        return FetchOrientation.FETCH_PRIOR
    return FetchOrientation.FETCH_NEXT


class ResultPageIterator:
    """Yields the result pages that follow the given delimiter.

    The client must provide fetch_results(operation_handle=, max_rows=,
    orientation=, include_result_set_metadata=) returning a FetchPage, and
    close_operation(operation_handle).
    """

    def __init__(
        self,
        delimiter: Delimiter = Delimiter(),
        max_page_size: int = 10000,
        operation_handle: Any = None,
        closed_on_server: bool = False,
        client: Any = None,
        connection_id: str = "",
        correlation_id: str = "",
        logger: Optional[logging.LoggerAdapter] = None,
    ) -> None:
        self.delimiter = delimiter
        self.max_page_size = max_page_size
        self.operation_handle = operation_handle
        self.closed_on_server = closed_on_server
        self.client = client
        self.connection_id = connection_id
        self.correlation_id = correlation_id
        self._log = logger or with_context(connection_id, correlation_id, "")
        self._finished = closed_on_server
        self._next_page: Optional[FetchPage] = None
        self._error: Optional[BaseException] = None

    def has_next(self) -> bool:
        """True when another page is available, fetching it if needed."""
        if self._finished and self._next_page is None:
            self._error = _Exhausted()
            return False

        if self._next_page is None:
            try:
                page = self._fetch_next_page()
            except (_Exhausted, DriverError, RequestError) as exc:
                self._close_quietly()
                self._finished = True
                self._error = exc
                return False
            self._error = None
            self._next_page = page
            if not page.has_more_rows:
                self._close_quietly()

        return self._next_page is not None

    def __iter__(self) -> "ResultPageIterator":
        return self

    def __next__(self) -> FetchPage:
        if not self.has_next():
            error = self._error
            if error is None or isinstance(error, _Exhausted):
                raise StopIteration
            raise error
        page, self._next_page = self._next_page, None
        return page

    def close(self) -> None:
        """Close the operation on the server unless that has already happened."""
        if self.closed_on_server:
            return
        self.closed_on_server = True
        if self.client is not None:
            self.client.close_operation(self.operation_handle)

    def _close_quietly(self) -> None:
        try:
            self.close()
        except Exception as exc:
            self._log.warning("databricks: failed to close operation: %s", exc)

    def _fetch_next_page(self) -> FetchPage:
        if self._finished:
            raise _Exhausted()

        start_row = self.delimiter.start + self.delimiter.count
        self._log.debug("databricks: fetching result page for row %d", start_row)

        page: Optional[FetchPage] = None
        while not self.delimiter.contains(start_row):
            direction = self.delimiter.direction(start_row)
            self._check_direction(direction)
            self._log.debug(
                "fetching next batch of up to %d rows, %s", self.max_page_size, direction
            )
            try:
                page = self.client.fetch_results(
                    operation_handle=self.operation_handle,
                    max_rows=self.max_page_size,
                    orientation=_to_orientation(direction),
                    include_result_set_metadata=True,
                )
            except Exception as exc:
                self._log.error("%s: %s", ERR_RESULT_FETCH_FAILED, exc)
                raise RequestError(ERR_RESULT_FETCH_FAILED, exc) from exc

            results = page.results
            offset = results.start_row_offset if results is not None else 0
            self.delimiter = Delimiter(offset, count_rows(results))
            self._finished = True if page.has_more_rows is None else not page.has_more_rows
            self._log.debug(
                "databricks: new result page startRow: %d, nRows: %d, hasMoreRows: %s",
                self.delimiter.start,
                self.delimiter.count,
                page.has_more_rows,
            )
        return page

    def _check_direction(self, direction: Direction) -> None:
        if direction == Direction.BACK:
            if self.delimiter.start == 0:
                raise DriverError(ERR_FETCH_PRIOR_TO_START)
        elif direction == Direction.FORWARD:
            if self._finished:
                raise _Exhausted()
        else:
            message = _unhandled_direction(direction)
            self._log.error(message)
            raise DriverError(message)