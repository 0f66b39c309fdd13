"""
Shared fixtures for the CloudWatch Logs search tests.

The logs client is a MagicMock shaped like the boto3 ``logs`` client, so
tests control every describe_log_groups / start_query / get_query_results
response.
"""

from unittest.mock import MagicMock, patch

import pytest

from cloudwatch_logs_search.cloudwatch_logs.tools import CloudWatchLogsSearchTools
from cloudwatch_logs_search.config import SearchConfig
from tests.helpers import make_results_response


@pytest.fixture
def search_config():
    """Search configuration for testing."""
    return SearchConfig(
        region="us-east-1",
        profile=None,
        log_group_name_prefix="/app",
        start_time="2022-09-22T00:00:00+09:00",
        end_time="2022-09-22T00:30:00+09:00",
        keyword="error",
        poll_interval_seconds=10,
        max_poll_attempts=None,
        poll_timeout_seconds=None,
        max_workers=2,
    )


@pytest.fixture
def logs_client():
    """Logs client where both groups exist and every query completes at once."""
    client = MagicMock()
    client.describe_log_groups.return_value = {
        "logGroups": [{"logGroupName": "/app/a"}, {"logGroupName": "/app/b"}]
    }
    client.start_query.side_effect = lambda **kwargs: {"queryId": f"q-{kwargs['logGroupName']}"}
    client.get_query_results.return_value = make_results_response()
    return client


@pytest.fixture
def tools(search_config, logs_client):
    """Search tools bound to the mocked client."""
    return CloudWatchLogsSearchTools(search_config, logs_client=logs_client)


@pytest.fixture
def mock_sleep():
    """Patch out the poll delay."""
    with patch("cloudwatch_logs_search.cloudwatch_logs.tools.time.sleep") as sleep:
        yield sleep
