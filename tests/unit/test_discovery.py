import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from moto import mock_aws

from cloudwatch_logs_search.cloudwatch_logs.tools import CloudWatchLogsSearchTools
from cloudwatch_logs_search.exceptions import DiscoveryError
from tests.helpers import make_client_error


class TestListLogGroupsWithMoto:
    """Test log group discovery against moto's CloudWatch Logs backend."""

    @pytest.fixture
    def moto_logs_client(self):
        with mock_aws():
            client = boto3.client("logs", region_name="us-east-1")
            for name in ["/app/a", "/app/b", "/other/c"]:
                client.create_log_group(logGroupName=name)
            yield client

    def test_prefix_filters_groups(self, search_config, moto_logs_client):
        """Test only groups under the prefix are returned."""
        tools = CloudWatchLogsSearchTools(search_config, logs_client=moto_logs_client)

        discovery = tools.list_log_groups("/app")

        assert discovery.ok
        assert discovery.log_group_names == ["/app/a", "/app/b"]
        assert discovery.log_group_name_prefix == "/app"

    def test_root_prefix_matches_all(self, search_config, moto_logs_client):
        """Test the default '/' prefix matches every group."""
        tools = CloudWatchLogsSearchTools(search_config, logs_client=moto_logs_client)

        discovery = tools.list_log_groups("/")

        assert sorted(discovery.log_group_names) == ["/app/a", "/app/b", "/other/c"]

    def test_no_match_is_not_an_error(self, search_config, moto_logs_client):
        """Test an unmatched prefix returns no names and no error."""
        tools = CloudWatchLogsSearchTools(search_config, logs_client=moto_logs_client)

        discovery = tools.list_log_groups("/missing")

        assert discovery.ok
        assert discovery.log_group_names == []


class TestListLogGroups:
    """Test discovery calls and failure handling with a mocked client."""

    def test_uses_config_prefix_by_default(self, tools, logs_client):
        """Test the configured prefix is sent when none is given."""
        discovery = tools.list_log_groups()

        logs_client.describe_log_groups.assert_called_once_with(logGroupNamePrefix="/app")
        assert discovery.log_group_names == ["/app/a", "/app/b"]

    def test_preserves_service_order(self, tools, logs_client):
        """Test names come back in the order the service listed them."""
        logs_client.describe_log_groups.return_value = {
            "logGroups": [{"logGroupName": "/z"}, {"logGroupName": "/a"}]
        }

        assert tools.list_log_groups("/").log_group_names == ["/z", "/a"]

    def test_empty_prefix_is_omitted(self, tools, logs_client):
        """Test an empty prefix lists without a name filter."""
        tools.list_log_groups("")

        logs_client.describe_log_groups.assert_called_once_with()

    def test_single_page_only(self, tools, logs_client):
        """Test nextToken is not followed."""
        logs_client.describe_log_groups.return_value = {
            "logGroups": [{"logGroupName": "/app/a"}],
            "nextToken": "more",
        }

        discovery = tools.list_log_groups()

        assert discovery.log_group_names == ["/app/a"]
        assert logs_client.describe_log_groups.call_count == 1

    def test_client_error_returned_not_raised(self, tools, logs_client):
        """Test a service error becomes a failed discovery."""
        logs_client.describe_log_groups.side_effect = make_client_error()

        discovery = tools.list_log_groups()

        assert not discovery.ok
        assert discovery.log_group_names == []
        assert "AccessDeniedException" in discovery.error

    def test_connection_error_returned_not_raised(self, tools, logs_client):
        """Test botocore transport errors are handled like service errors."""
        logs_client.describe_log_groups.side_effect = EndpointConnectionError(
            endpoint_url="https://logs.us-east-1.amazonaws.com"
        )

        discovery = tools.list_log_groups()

        assert not discovery.ok
        assert "Could not connect" in discovery.error

    def test_raise_for_error(self, tools, logs_client):
        """Test a failed discovery can be turned into a DiscoveryError."""
        logs_client.describe_log_groups.side_effect = make_client_error()

        discovery = tools.list_log_groups()

        with pytest.raises(DiscoveryError) as exc_info:
            discovery.raise_for_error()
        assert exc_info.value.log_group_name_prefix == "/app"

    def test_raise_for_error_noop_on_success(self, tools):
        """Test a successful discovery does not raise."""
        tools.list_log_groups().raise_for_error()
