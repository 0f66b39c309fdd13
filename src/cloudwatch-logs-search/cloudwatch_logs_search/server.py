import os
from cloudwatch_logs_search.cloudwatch_logs.tools import CloudWatchLogsSearchTools
from fastmcp import FastMCP
from loguru import logger


mcp = FastMCP(
    'cloudwatch-logs-search',
    instructions='Use this MCP server to search CloudWatch Logs. It discovers log groups by name prefix and runs a CloudWatch Logs Insights keyword query against each matching log group over a time window, returning the timestamp, log stream and message of every match.',
)

# Initialize and register CloudWatch Logs search tools
try:
    cloudwatch_logs_search_tools = CloudWatchLogsSearchTools()
    cloudwatch_logs_search_tools.register(mcp)
    logger.info('CloudWatch Logs search tools registered successfully')
except Exception as e:
    logger.error(f'Error initializing CloudWatch Logs search tools: {str(e)}')
    raise


# Add health check endpoint for Kubernetes/monitoring probes
from starlette.requests import Request
from starlette.responses import JSONResponse


@mcp.custom_route('/health', methods=['GET'], include_in_schema=False)
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({'status': 'ok'})


DEFAULT_PORT = 3334


def resolve_port(raw_port: str) -> int:
    """Read the port from a plain number or a Kubernetes-style tcp://host:port value."""
    try:
        return int(raw_port)
    except ValueError:
        pass

    if raw_port.startswith('tcp://') and raw_port.rsplit(':', 1)[-1].isdigit():
        port = int(raw_port.rsplit(':', 1)[-1])
        logger.warning(f'Normalized LOGS_SEARCH_MCP_PORT {raw_port} to {port}')
        return port

    logger.warning(f'Invalid LOGS_SEARCH_MCP_PORT {raw_port}, defaulting to {DEFAULT_PORT}')
    return DEFAULT_PORT


def main():
    """Run the MCP server."""
    logger.info('Initializing CloudWatch Logs search MCP server...')
    logger.info(f'AWS_PROFILE={os.getenv("AWS_PROFILE")}  AWS_REGION={os.getenv("AWS_REGION")}')
    host = os.getenv('LOGS_SEARCH_MCP_HOST', '0.0.0.0')
    port = resolve_port(os.getenv('LOGS_SEARCH_MCP_PORT', str(DEFAULT_PORT)))

    mcp.run(transport='streamable-http', host=host, port=port)


if __name__ == '__main__':
    main()
