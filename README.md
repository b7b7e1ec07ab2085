# dbsqlkit

Building blocks for a client of a SQL warehouse that serves query results in
pages. It binds query parameters, pages through results, parses date/time
column values and polls long-running operations. It needs only the standard
library.

## Modules

### `dbsqlkit.parameters`

- `SqlType` is an enum of parameter SQL types. `str(SqlType.INTERVAL_MONTH)`
  gives `"INTERVAL MONTH"`, and `SqlType.UNKNOWN` gives `"unknown"`.
- `Parameter(name, type, value)` is a parameter. It may carry an explicit type.
- `NamedValue(name, value, ordinal)` is an argument as a statement receives it.
- `SparkParameter(name, type, value)` is the form sent to the server. Its
  value is a string, or `None` for a `VOID` parameter.
- `values_to_parameters(named_values)` builds `Parameter`s. It unwraps
  values that are already `Parameter`s.
- `infer_type(param)` returns a copy of the parameter with a type and a
  string value. The rules are:
  - `None` becomes `VOID`.
  - `bool` becomes `BOOLEAN`.
  - `str` and `bytes` become `STRING`.
  - `int` becomes `INTEGER`.
  - `float` becomes `FLOAT`, in shortest plain notation.
  - `datetime` becomes `TIMESTAMP`, in RFC 3339 form. A naive `datetime` is
    taken as UTC.
  - Anything else is converted with `str()` and becomes `STRING`.
- `infer_types(params)` infers types only for parameters whose type is
  `UNKNOWN`.
- `infer_decimal_type(d)` gives the type name for a decimal literal, such as
  `"DECIMAL(5,2)"` for `"123.45"`.
- `convert_to_spark_params(values)` runs all of these steps. It raises
  `TypeError` when an explicitly typed parameter has a value that is not a
  string.

### `dbsqlkit.result`

`Result(rows_affected, last_insert_id)` is the outcome of a statement that
returns no rows. `last_insert_id` is always 0.

### `dbsqlkit.logger`

All log lines go through one logger, `"dbsqlkit"`. They are written to
stderr: as compact text when stdout is a terminal (not on Windows), and as
JSON lines otherwise.

- The default level is `warn`. The `DATABRICKS_LOG_LEVEL` environment
  variable overrides it when the module is first imported.
- `get_logger()` returns the logger.
- `set_log_level(name)` accepts `trace`, `debug`, `info`, `warn`, `error`,
  `fatal`, `panic` or `disabled`. It raises `ValueError` for any other name.
- `set_log_output(stream)` sends JSON lines to the given text stream.
- `with_context(connection_id, correlation_id, query_id)` returns a
  `LoggerAdapter`. The adapter tags each line with `connId`, `corrId` and
  `queryId`.
- `track(msg)` returns the message and a start time.
- `duration(msg, start)` logs the elapsed time at debug level.

### `dbsqlkit.sentinel`

`Sentinel(status_fn, on_cancel_fn, on_done_fn).watch(token, interval, timeout)`
polls `status_fn` every `interval` seconds. The default interval is 0.1 s.
`status_fn` returns a pair: a no-argument done check and a status response.

The watch ends in one of these ways:

- `SUCCESS`: the done check is true. The result holds the response, or what
  `on_done_fn` made of it. `on_done_fn` runs in a background thread.
- `ERROR`: `status_fn` or `on_done_fn` raised. The result holds the error.
- `TIMEOUT`: `timeout` seconds passed. A timeout of 0 means no timeout.
- `CANCELED`: the `CancellationToken` was cancelled or reached its deadline.
  The error is a `concurrent.futures.CancelledError` for a cancellation and a
  `TimeoutError` for a deadline.

On timeout or cancellation, `on_cancel_fn` is called once. The result is a
`WatchResult(status, value, error)` whose status is a `WatchStatus`.

To make a token that cancels itself, use
`CancellationToken.with_timeout(seconds)`. To cancel a token by hand, call
`token.cancel()`.

### `dbsqlkit.rowscanner`

- `Delimiter(start, count)` is the row window of a result page. It has an
  `end` property and the methods `contains(row)` and `direction(row)`.
  `direction(row)` returns a `Direction`: `NONE`, `FORWARD`, `BACK` or
  `UNKNOWN`.
- `is_null(nulls, position)` reads a bit from a null bitmap.
- `handle_datetime(value, db_type, column_name, tz)` parses string values
  for `DATE` (`YYYY-MM-DD`) and `TIMESTAMP` (`YYYY-MM-DD HH:MM:SS[.fraction]`)
  columns as `datetime` in `tz`, which defaults to UTC. It returns values of
  other column types unchanged. It reads a leading `-` or `U+2212` as a
  negative year and returns a `NegativeYearDatetime` for it. It raises
  `RowParseError` when a value cannot be parsed.

### `dbsqlkit.resultpages`

- `ResultPageIterator` yields the `FetchPage`s that follow its starting
  `Delimiter`. It supports `has_next()`, iteration and `close()`.
  - If a returned page is not the one expected, it fetches again with
    `FetchOrientation.FETCH_NEXT` or `FETCH_PRIOR` until it gets that page.
  - It closes the operation on the server once the last page is fetched.
  - Iteration raises `DriverError` when a fetch would go before the first
    row, and `RequestError` when the client fails.
- The client is any object with these two methods:
  - `fetch_results(operation_handle=, max_rows=, orientation=, include_result_set_metadata=)`,
    which returns a `FetchPage`.
  - `close_operation(operation_handle)`.
- A `RowSet` holds `start_row_offset` and one of the following:
  - `columns`, a sequence of value sequences;
  - `arrow_batches`, a sequence of row counts;
  - `result_links`, a sequence of row counts.
- `count_rows(row_set)` gives the number of rows in a row set.

## Examples

```python
from dbsqlkit.parameters import NamedValue, convert_to_spark_params

params = convert_to_spark_params([NamedValue(name="limit", value=10)])
assert params[0].type == "INTEGER"
assert params[0].value == "10"
```

```python
from dbsqlkit.sentinel import CancellationToken, Sentinel, WatchStatus

sentinel = Sentinel(status_fn=lambda: (lambda: True, "completed"))
outcome = sentinel.watch(CancellationToken(), interval=0.01, timeout=1.0)
assert outcome.status is WatchStatus.SUCCESS
assert outcome.value == "completed"
```

```python
from datetime import datetime, timezone
from dbsqlkit.rowscanner import handle_datetime

value = handle_datetime("2006-12-22", "DATE", "date_col", timezone.utc)
assert value == datetime(2006, 12, 22, tzinfo=timezone.utc)
```

## What it does not do

The package is not a complete client. It does not:

- open connections or sessions;
- execute statements;
- speak any wire protocol or transport;
- decode column or Arrow data into rows.

`ResultPageIterator` and `Sentinel` work with whatever client object and
status function you supply.

## Running the tests

```
pip install -e .[test]
pytest
```