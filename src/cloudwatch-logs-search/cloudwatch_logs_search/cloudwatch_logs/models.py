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

"""Models returned by the CloudWatch Logs search tools."""

from cloudwatch_logs_search.exceptions import DiscoveryError
from pydantic import BaseModel, Field
from typing import List, Optional


class QueryResult(BaseModel):
    """One Logs Insights result row reduced to timestamp, stream and message."""

    timestamp: str = Field(default='', description='Value of the @timestamp field')
    log_stream: str = Field(default='', description='Value of the @logStream field')
    message: str = Field(default='', description='Value of the @message field')


class LogGroupDiscovery(BaseModel):
    """Outcome of listing log groups by prefix.

    An empty ``log_group_names`` with ``error`` set means the listing failed,
    not that nothing matched.
    """

    log_group_name_prefix: Optional[str] = None
    log_group_names: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Raise DiscoveryError if the listing failed."""
        if self.error is not None:
            raise DiscoveryError(self.log_group_name_prefix, self.error)


class GroupSearchResult(BaseModel):
    """Results, or the failure, of running the query against one log group."""

    log_group_name: str
    query_id: Optional[str] = None
    results: List[QueryResult] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SearchSummary(BaseModel):
    """Everything a search run produced, with groups in discovery order."""

    query_string: str
    log_group_name_prefix: Optional[str] = None
    discovery_error: Optional[str] = None
    groups: List[GroupSearchResult] = Field(default_factory=list)

    @property
    def failed_groups(self) -> List[GroupSearchResult]:
        return [group for group in self.groups if not group.ok]

    @property
    def message_count(self) -> int:
        return sum(len(group.results) for group in self.groups)

    @property
    def ok(self) -> bool:
        return self.discovery_error is None and not self.failed_groups
