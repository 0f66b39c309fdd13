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

"""Shared helpers: time conversion, query assembly, result normalization."""

import datetime
import re
import sys
from cloudwatch_logs_search.cloudwatch_logs.models import QueryResult
from cloudwatch_logs_search.exceptions import ParseError
from loguru import logger
from typing import Any, Dict, Iterable, List


# RFC 3339 date-time: full date, full time, optional fraction, mandatory offset
RFC3339_PATTERN = re.compile(
    r'(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})'
    r'T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})'
    r'(?:\.(?P<fraction>\d+))?'
    r'(?P<offset>Z|[+-]\d{2}:\d{2})',
    re.ASCII,
)

QUERY_TEMPLATE = 'fields @timestamp, @message, @logStream | filter @message {keyword}'

# Insights field name -> QueryResult attribute
RESULT_FIELDS = {
    '@timestamp': 'timestamp',
    '@logStream': 'log_stream',
    '@message': 'message',
}

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def remove_null_values(d: Dict) -> Dict:
    """Return a copy of the dict without keys whose value is None."""
    return {k: v for k, v in d.items() if v is not None}


def parse_absolute_time(text: str) -> datetime.datetime:
    """Parse an RFC 3339 date-time such as ``2022-09-22T00:00:00+09:00``.

    Args:
        text: Date, time and UTC offset. ``Z`` is accepted for UTC.

    Returns:
        A timezone-aware datetime. Fractions finer than a microsecond are dropped.

    Raises:
        ParseError: If the text is not a full RFC 3339 date-time
    """
    if not isinstance(text, str):
        raise ParseError(text)
    match = RFC3339_PATTERN.fullmatch(text)
    if match is None:
        raise ParseError(text)

    parts = match.groupdict()
    offset = parts['offset']
    if offset == 'Z':
        tz = datetime.timezone.utc
    else:
        sign = -1 if offset[0] == '-' else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise ParseError(text)
        tz = datetime.timezone(sign * datetime.timedelta(hours=hours, minutes=minutes))

    fraction = (parts['fraction'] or '')[:6].ljust(6, '0')
    try:
        return datetime.datetime(
            int(parts['year']),
            int(parts['month']),
            int(parts['day']),
            int(parts['hour']),
            int(parts['minute']),
            int(parts['second']),
            int(fraction),
            tzinfo=tz,
        )
    except ValueError as e:
        raise ParseError(text, e) from e


def to_epoch_milliseconds(value: datetime.datetime) -> int:
    """Convert an aware datetime to milliseconds since the epoch, truncating toward zero."""
    delta = value - _EPOCH
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    if micros < 0:
        return -(-micros // 1000)
    return micros // 1000


def assemble_query(keyword: str) -> str:
    """Render the Logs Insights query that filters @message by the keyword.

    The keyword is inserted as-is, so it may carry query syntax of its own
    (``like /err/``, ``= "x"``, ...).
    """
    return QUERY_TEMPLATE.format(keyword=keyword)


def normalize_record(record: Iterable[Dict[str, Any]]) -> QueryResult:
    """Map one Insights result row (a list of field/value pairs) to a QueryResult."""
    values = {}
    for element in record:
        attribute = RESULT_FIELDS.get(element.get('field'))
        if attribute is None:
            continue
        values[attribute] = element.get('value') or ''
    return QueryResult(**values)


def normalize_results(response: Dict) -> List[QueryResult]:
    """Normalize every row of a get_query_results response."""
    return [normalize_record(record) for record in response.get('results', [])]


def configure_logging(level: str = 'INFO', serialize: bool = False) -> None:
    """Send log output to stderr at the given level, optionally as JSON lines."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), serialize=serialize)
