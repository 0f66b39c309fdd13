# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CloudWatch Logs Insights search tools."""

import asyncio
import boto3
import threading
import time
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from cloudwatch_logs_search import LOGS_SEARCH_VERSION
from cloudwatch_logs_search.cloudwatch_logs.models import (
    GroupSearchResult,
    LogGroupDiscovery,
    QueryResult,
    SearchSummary,
)
from cloudwatch_logs_search.common import (
    assemble_query,
    normalize_results,
    parse_absolute_time,
    remove_null_values,
    to_epoch_milliseconds,
)
from cloudwatch_logs_search.config import SearchConfig
from cloudwatch_logs_search.exceptions import (
    LogsSearchError,
    ParseError,
    QueryCancelledError,
    QueryStartError,
    QueryTimeoutError,
    ResultFetchError,
)
from concurrent.futures import ThreadPoolExecutor
from fastmcp import Context
from loguru import logger
from pydantic import Field
from timeit import default_timer as timer
from typing import Annotated, Callable, Dict, List, Optional, Tuple


COMPLETE_STATUS = 'Complete'
# Terminal statuses that will never turn into Complete
FAILED_QUERY_STATUSES = {'Failed', 'Cancelled', 'Timeout'}


class CloudWatchLogsSearchTools:
    """Discover log groups by prefix and run one Insights query per group."""

    def __init__(self, config: Optional[SearchConfig] = None, logs_client=None):
        """Initialize the search tools.

        Args:
            config: Search options, read from the environment when omitted
            logs_client: Pre-built CloudWatch Logs client, mainly for tests
        """
        self.config = config or SearchConfig()
        self._logs_client = logs_client

    @property
    def logs_client(self):
        """Get the logs client for the configured region and profile."""
        if self._logs_client is None:
            self._logs_client = self._get_logs_client(self.config.region, self.config.profile)
        return self._logs_client

    def _get_logs_client(self, region: str, profile: Optional[str] = None):
        """Create a CloudWatch Logs client for the specified region.

        Args:
            region: AWS region
            profile: Optional shared credentials profile

        Returns:
            CloudWatch Logs client
        """
        config = Config(user_agent_extra=f'cloudwatch-logs-search/{LOGS_SEARCH_VERSION}')

        try:
            if profile:
                return boto3.Session(profile_name=profile, region_name=region).client(
                    'logs', config=config
                )
            return boto3.Session(region_name=region).client('logs', config=config)
        except Exception as e:
            logger.error(f'Error creating cloudwatch logs client for region {region}: {str(e)}')
            raise

    def list_log_groups(self, log_group_name_prefix: Optional[str] = None) -> LogGroupDiscovery:
        """List the names of log groups starting with the prefix.

        Only the first page of describe_log_groups is read. A service error
        does not raise; it is returned on the discovery's ``error`` field.
        """
        if log_group_name_prefix is None:
            log_group_name_prefix = self.config.log_group_name_prefix

        try:
            response = self.logs_client.describe_log_groups(
                **remove_null_values({'logGroupNamePrefix': log_group_name_prefix or None})
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning(f'Could not list log groups with prefix {log_group_name_prefix!r}: {e}')
            return LogGroupDiscovery(log_group_name_prefix=log_group_name_prefix, error=str(e))

        names = [group['logGroupName'] for group in response.get('logGroups', [])]
        logger.debug(f'Log groups: {names}')
        return LogGroupDiscovery(log_group_name_prefix=log_group_name_prefix, log_group_names=names)

    def start_query(
        self,
        log_group_name: str,
        query_string: str,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> str:
        """Start an Insights query against one log group.

        Args:
            log_group_name: Log group to search
            query_string: Logs Insights query
            start_time: RFC 3339 start of the window, config value when omitted
            end_time: RFC 3339 end of the window, config value when omitted

        Returns:
            The query id to poll with get_query_results

        Raises:
            QueryStartError: If a time does not parse or the service rejects the query
        """
        if start_time is None:
            start_time = self.config.start_time
        if end_time is None:
            end_time = self.config.end_time

        logger.debug(f'Query: {query_string}')
        try:
            start_ms = to_epoch_milliseconds(parse_absolute_time(start_time))
            end_ms = to_epoch_milliseconds(parse_absolute_time(end_time))
        except ParseError as e:
            raise QueryStartError(log_group_name, e) from e

        try:
            response = self.logs_client.start_query(
                logGroupName=log_group_name,
                startTime=start_ms,
                endTime=end_ms,
                queryString=query_string,
            )
        except (BotoCoreError, ClientError) as e:
            raise QueryStartError(log_group_name, e) from e

        query_id = response['queryId']
        logger.info(f'Started query with ID: {query_id} for log group {log_group_name}')
        return query_id

    def _fetch_query_results(self, query_id: str) -> Dict:
        try:
            return self.logs_client.get_query_results(queryId=query_id)
        except (BotoCoreError, ClientError) as e:
            raise ResultFetchError(query_id, original_error=e) from e

    def _stop_query(self, query_id: str) -> None:
        try:
            self.logs_client.stop_query(queryId=query_id)
            logger.info(f'Stopped query {query_id}')
        except (BotoCoreError, ClientError) as e:
            logger.warning(f'Could not stop query {query_id}: {e}')

    def _poll_for_query_completion(
        self,
        query_id: str,
        response: Dict,
        cancelled: Optional[threading.Event] = None,
    ) -> Dict:
        """Poll until the query is Complete, sleeping between calls.

        Stops with QueryTimeoutError once max_poll_attempts calls were made or
        poll_timeout_seconds elapsed, and with ResultFetchError if the query
        reaches a failed terminal status. When ``cancelled`` is given the wait
        between calls ends as soon as it is set; the query is then stopped and
        QueryCancelledError is raised.
        """
        max_attempts = self.config.max_poll_attempts
        max_timeout = self.config.poll_timeout_seconds
        interval = self.config.poll_interval_seconds

        poll_start = timer()
        attempts = 1
        while (status := response.get('status')) != COMPLETE_STATUS:
            if status in FAILED_QUERY_STATUSES:
                raise ResultFetchError(query_id, f'Query {query_id} finished with status {status}')

            elapsed = timer() - poll_start
            if (max_attempts is not None and attempts >= max_attempts) or (
                max_timeout is not None and elapsed >= max_timeout
            ):
                logger.warning(f'Query {query_id} still {status} after {attempts} attempts')
                raise QueryTimeoutError(query_id, attempts, elapsed)

            logger.debug(f'Query {query_id} is {status}, waiting {interval} seconds')
            if cancelled is None:
                time.sleep(interval)
            elif cancelled.wait(interval):
                self._stop_query(query_id)
                raise QueryCancelledError(query_id)
            response = self._fetch_query_results(query_id)
            attempts += 1

        logger.info(f'Query {query_id} finished with status {COMPLETE_STATUS}')
        return response

    def get_query_results(
        self,
        query_id: str,
        wait: bool = False,
        cancelled: Optional[threading.Event] = None,
    ) -> List[QueryResult]:
        """Fetch and normalize the results of a query.

        Args:
            query_id: Id returned by start_query
            wait: Poll until the query is Complete. When False the single
                response is normalized as-is and may be partial.
            cancelled: Event that interrupts polling when set

        Returns:
            One QueryResult per result row

        Raises:
            ResultFetchError: If the service call fails or the query failed
            QueryTimeoutError: If the query did not complete within the polling bounds
            QueryCancelledError: If ``cancelled`` was set while polling
        """
        response = self._fetch_query_results(query_id)
        if wait:
            response = self._poll_for_query_completion(query_id, response, cancelled)
        return normalize_results(response)

    def _search_log_group(
        self,
        log_group_name: str,
        query_string: str,
        cancelled: Optional[threading.Event] = None,
    ) -> Tuple[str, List[QueryResult]]:
        if cancelled is not None and cancelled.is_set():
            raise QueryCancelledError()
        query_id = self.start_query(log_group_name, query_string)
        results = self.get_query_results(query_id, wait=True, cancelled=cancelled)
        logger.info(f'Log group {log_group_name}: {len(results)} results')
        return query_id, results

    def search(self, emit: Optional[Callable[[str], None]] = None) -> SearchSummary:
        """Run the configured query against every matching log group.

        Log groups are searched on a pool of ``max_workers`` threads. Results
        are collected and emitted in discovery order. When the run ends early
        because of fail_fast, queries still polling in other workers are stopped.

        Args:
            emit: Called with the message of every result, in order

        Returns:
            A SearchSummary with one GroupSearchResult per discovered group

        Raises:
            ParseError: If the configured start or end time is malformed
            LogsSearchError: The first group failure, when fail_fast is set
        """
        config = self.config
        query_string = assemble_query(config.keyword)
        logger.debug(f'Query: {query_string}')

        parse_absolute_time(config.start_time)
        parse_absolute_time(config.end_time)

        discovery = self.list_log_groups(config.log_group_name_prefix)
        if not discovery.ok:
            return SearchSummary(
                query_string=query_string,
                log_group_name_prefix=config.log_group_name_prefix,
                discovery_error=discovery.error,
            )

        names = discovery.log_group_names
        groups: List[GroupSearchResult] = []
        cancelled = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=max(1, min(config.max_workers, len(names))),
            thread_name_prefix='logs-search',
        )
        try:
            futures = [
                executor.submit(self._search_log_group, name, query_string, cancelled)
                for name in names
            ]
            for name, future in zip(names, futures):
                try:
                    query_id, results = future.result()
                except LogsSearchError as e:
                    if config.fail_fast:
                        logger.error(f'Stopping search after failure in log group {name}: {e}')
                        raise
                    logger.warning(f'Search failed for log group {name}: {e}')
                    groups.append(
                        GroupSearchResult(
                            log_group_name=name,
                            query_id=getattr(e, 'query_id', None),
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                    )
                    continue

                groups.append(
                    GroupSearchResult(log_group_name=name, query_id=query_id, results=results)
                )
                if emit is not None:
                    for result in results:
                        emit(result.message)
        finally:
            cancelled.set()
            executor.shutdown(wait=False, cancel_futures=True)

        summary = SearchSummary(
            query_string=query_string,
            log_group_name_prefix=config.log_group_name_prefix,
            groups=groups,
        )
        logger.info(
            f'Searched {len(groups)} log groups, {summary.message_count} results, '
            f'{len(summary.failed_groups)} failed'
        )
        return summary

    def _for_request(self, **overrides) -> 'CloudWatchLogsSearchTools':
        """Return tools bound to the config with per-request overrides applied.

        The logs client is shared unless the region or profile changes.
        """
        overrides = remove_null_values(overrides)
        if not overrides:
            return self
        config = SearchConfig(**{**self.config.model_dump(), **overrides})
        logs_client = None
        if (config.region, config.profile) == (self.config.region, self.config.profile):
            logs_client = self.logs_client
        return CloudWatchLogsSearchTools(config, logs_client=logs_client)

    def register(self, mcp):
        """Register the search tools with the MCP server."""
        # Register describe_log_groups tool
        mcp.tool(name='describe_log_groups')(self.describe_log_groups)

        # Register search_log_groups tool
        mcp.tool(name='search_log_groups')(self.search_log_groups)

    async def describe_log_groups(
        self,
        ctx: Context,
        log_group_name_prefix: Annotated[
            str | None,
            Field(
                description=(
                    'An exact prefix to filter log groups by name. Defaults to the server configuration.'
                )
            ),
        ] = None,
        region: Annotated[
            str | None,
            Field(description='AWS region to query. Defaults to the server configuration.'),
        ] = None,
    ) -> LogGroupDiscovery:
        """Lists the names of CloudWatch log groups starting with a prefix.

        Only the first page of log groups is returned. If the listing fails the
        result carries an error message instead of raising, so an empty list
        with no error really means nothing matched.
        """
        try:
            tools = self._for_request(region=region)
            discovery = await asyncio.to_thread(tools.list_log_groups, log_group_name_prefix)
            if not discovery.ok:
                await ctx.warning(f'Could not list log groups: {discovery.error}')
            return discovery
        except Exception as e:
            logger.error(f'Error in describe_log_groups_tool: {str(e)}')
            raise

    async def search_log_groups(
        self,
        ctx: Context,
        keyword: str = Field(
            ...,
            description=(
                'Filter expression appended to "filter @message", e.g. "like /ERROR/". Inserted verbatim.'
            ),
        ),
        start_time: str = Field(
            ...,
            description='RFC 3339 start of the query window (e.g., "2025-04-19T20:00:00+00:00").',
        ),
        end_time: str = Field(
            ...,
            description='RFC 3339 end of the query window (e.g., "2025-04-19T21:00:00+00:00").',
        ),
        log_group_name_prefix: Annotated[
            str | None,
            Field(description='Only log groups whose names start with this prefix are searched.'),
        ] = None,
        max_timeout: Annotated[
            int | None,
            Field(description='Maximum time in seconds to poll each query before giving up'),
        ] = None,
        region: Annotated[
            str | None,
            Field(description='AWS region to query. Defaults to the server configuration.'),
        ] = None,
    ) -> SearchSummary:
        """Runs a Logs Insights keyword search against every log group matching a prefix.

        The query is `fields @timestamp, @message, @logStream | filter @message <keyword>`.
        Each matching log group is queried separately and polled until complete.

        Returns:
        --------
            A summary with, per log group in discovery order:
                - log_group_name, query_id
                - results: timestamp, log_stream and message of every match
                - error: why the group failed, if it did
            and discovery_error when the log groups could not be listed.
        """
        try:
            tools = self._for_request(
                keyword=keyword,
                start_time=start_time,
                end_time=end_time,
                log_group_name_prefix=log_group_name_prefix,
                poll_timeout_seconds=max_timeout,
                region=region,
                fail_fast=False,
            )
            summary = await asyncio.to_thread(tools.search)

            if summary.discovery_error:
                await ctx.warning(f'Could not list log groups: {summary.discovery_error}')
            for group in summary.failed_groups:
                await ctx.warning(f'Search failed for log group {group.log_group_name}: {group.error}')
            return summary
        except Exception as e:
            logger.error(f'Error in search_log_groups_tool: {str(e)}')
            raise
