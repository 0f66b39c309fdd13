"""Builders for boto3-shaped CloudWatch Logs responses."""

from botocore.exceptions import ClientError


def make_record(timestamp="T1", message="M1", log_stream="S1", **extra):
    """Build one Insights result row as a list of field/value pairs."""
    record = [
        {"field": "@timestamp", "value": timestamp},
        {"field": "@message", "value": message},
        {"field": "@logStream", "value": log_stream},
    ]
    record.extend({"field": field, "value": value} for field, value in extra.items())
    return record


def make_results_response(status="Complete", records=None):
    """Build a get_query_results response."""
    return {
        "status": status,
        "results": records if records is not None else [make_record()],
        "statistics": {"recordsMatched": 1.0, "recordsScanned": 10.0, "bytesScanned": 100.0},
    }


def make_client_error(code="AccessDeniedException", operation="DescribeLogGroups"):
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)
