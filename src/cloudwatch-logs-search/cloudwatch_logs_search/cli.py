"""Command line entry point: print every log message matching a keyword."""

import click
from cloudwatch_logs_search.cloudwatch_logs.models import SearchSummary
from cloudwatch_logs_search.cloudwatch_logs.tools import CloudWatchLogsSearchTools
from cloudwatch_logs_search.common import configure_logging, remove_null_values
from cloudwatch_logs_search.config import SearchConfig
from cloudwatch_logs_search.exceptions import LogsSearchError
from loguru import logger
from pydantic import ValidationError


def report_failures(summary: SearchSummary) -> None:
    """Write what went wrong in a run to stderr."""
    if summary.discovery_error:
        click.echo(
            f'Could not list log groups with prefix {summary.log_group_name_prefix!r}: '
            f'{summary.discovery_error}',
            err=True,
        )
    for group in summary.failed_groups:
        click.echo(f'{group.log_group_name}: {group.error_type}: {group.error}', err=True)
    if summary.failed_groups:
        click.echo(
            f'{len(summary.failed_groups)} of {len(summary.groups)} log groups failed',
            err=True,
        )


@click.command()
@click.option('--region', '-r', type=str, default=None, help='AWS region (default: ap-northeast-1)')
@click.option('--profile', '-p', type=str, default=None, help='Shared credentials profile')
@click.option('--group-name', '-g', type=str, default=None, help='Log group name prefix (default: /)')
@click.option('--start', type=str, default=None, help='RFC 3339 start time, e.g. 2022-09-22T00:00:00+09:00')
@click.option('--end', type=str, default=None, help='RFC 3339 end time, e.g. 2022-09-22T00:30:00+09:00')
@click.option('--keyword', type=str, default=None, help='Filter applied to @message, e.g. "like /ERROR/"')
@click.option('--poll-interval', type=float, default=None, help='Seconds between result polls (default: 10)')
@click.option('--max-poll-attempts', type=int, default=None, help='Give up on a query after this many polls')
@click.option(
    '--poll-timeout',
    type=str,
    default=None,
    help='Give up on a query after this many seconds, 0 or none for no limit (default: 900)',
)
@click.option('--max-workers', type=int, default=None, help='Log groups searched concurrently (default: 4)')
@click.option('--fail-fast', is_flag=True, default=False, help='Stop at the first log group that fails')
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='WARNING',
    show_default=True,
)
@click.option('--json-logs', is_flag=True, default=False, help='Write logs to stderr as JSON lines')
def main(region, profile, group_name, start, end, keyword, poll_interval, max_poll_attempts,
         poll_timeout, max_workers, fail_fast, log_level, json_logs):
    """Search CloudWatch log groups with a Logs Insights keyword query."""
    configure_logging(log_level, serialize=json_logs)

    try:
        config = SearchConfig(**remove_null_values({
            'region': region,
            'profile': profile,
            'log_group_name_prefix': group_name,
            'start_time': start,
            'end_time': end,
            'keyword': keyword,
            'poll_interval_seconds': poll_interval,
            'max_poll_attempts': max_poll_attempts,
            'poll_timeout_seconds': poll_timeout,
            'max_workers': max_workers,
            'fail_fast': fail_fast,
        }))
    except ValidationError as e:
        raise click.UsageError(str(e))

    logger.debug(f'Keyword: {config.keyword}')

    try:
        summary = CloudWatchLogsSearchTools(config).search(emit=click.echo)
    except LogsSearchError as e:
        logger.error(f'Search aborted: {e}')
        raise click.ClickException(str(e))

    if not summary.ok:
        report_failures(summary)
        raise SystemExit(1)


if __name__ == '__main__':
    main()
