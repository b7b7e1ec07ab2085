"""Parameter binding, result paging, date/time parsing, status polling and logging for a SQL warehouse client."""

__version__ = "0.1.0"

__all__ = [
    "logger",
    "parameters",
    "result",
    "sentinel",
    "rowscanner",
    "resultpages",
]