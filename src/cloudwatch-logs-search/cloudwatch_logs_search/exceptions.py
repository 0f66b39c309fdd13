"""Exceptions raised while searching CloudWatch log groups."""

from typing import Any, Dict, Optional


class LogsSearchError(Exception):
    """Base class for every error raised by the search workflow."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the error.

        Args:
            message: Human-readable error message
            original_error: The exception that caused this error, if any
            context: Additional context (log group, query id, ...)
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context = context or {}

    def __str__(self) -> str:
        if self.original_error is not None:
            return f'{self.message}: {self.original_error}'
        return self.message


class ParseError(LogsSearchError):
    """Raised when a time string is not an RFC 3339 date-time."""

    def __init__(self, text: Any, original_error: Optional[Exception] = None):
        self.text = text
        super().__init__(
            f'Invalid RFC 3339 timestamp {text!r}',
            original_error,
            {'text': text},
        )


class DiscoveryError(LogsSearchError):
    """Raised when log groups could not be listed."""

    def __init__(
        self,
        log_group_name_prefix: Optional[str],
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.log_group_name_prefix = log_group_name_prefix
        super().__init__(
            message,
            original_error,
            {'log_group_name_prefix': log_group_name_prefix},
        )


class QueryStartError(LogsSearchError):
    """Raised when a query could not be started for a log group.

    Covers both rejected ``start_query`` calls and time strings that fail to
    parse at submission time.
    """

    def __init__(self, log_group_name: str, original_error: Optional[Exception] = None):
        self.log_group_name = log_group_name
        super().__init__(
            f'Failed to start query for log group {log_group_name}',
            original_error,
            {'log_group_name': log_group_name},
        )


class ResultFetchError(LogsSearchError):
    """Raised when fetching or polling query results fails."""

    def __init__(
        self,
        query_id: str,
        message: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.query_id = query_id
        super().__init__(
            message or f'Failed to fetch results for query {query_id}',
            original_error,
            {'query_id': query_id},
        )


class QueryTimeoutError(LogsSearchError, TimeoutError):
    """Raised when a query does not complete within the polling bounds."""

    def __init__(self, query_id: str, attempts: int, elapsed_seconds: float):
        self.query_id = query_id
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f'Query {query_id} did not complete after {attempts} attempts '
            f'({elapsed_seconds:.1f} seconds)',
            context={
                'query_id': query_id,
                'attempts': attempts,
                'elapsed_seconds': elapsed_seconds,
            },
        )


class QueryCancelledError(LogsSearchError):
    """Raised in a worker when the search it belongs to has been stopped."""

    def __init__(self, query_id: Optional[str] = None):
        self.query_id = query_id
        super().__init__(
            f'Query {query_id} cancelled' if query_id else 'Search cancelled before the query started',
            context={'query_id': query_id},
        )
