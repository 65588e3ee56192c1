import argparse
import asyncio
from functools import partial
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP

from blueidp import log
from blueidp.errors import AuthError, DirectoryError, UnexpectedShapeError
from blueidp.report import atomic_write_json, build_check_report, dump_json


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


async def run_tool(name: str, fn: Callable[..., Any], **kwargs: Any) -> str:
    """
    Run a blocking tool operation on a worker thread and serialize its result.
    Operation errors are logged and re-raised for the dispatcher to report.
    """
    try:
        result = await asyncio.to_thread(partial(fn, **kwargs))
    except (AuthError, DirectoryError, UnexpectedShapeError) as e:
        log.error(f"Tool {name} failed", error=str(e), kind=type(e).__name__)
        raise
    return dump_json(result)


def base_arg_parser(description: str) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description=description)
    ap.add_argument("--env-file", help="Load environment variables from this dotenv file (default: ./.env if present).")
    ap.add_argument("--check", action="store_true", help="Acquire one access token, report the result, and exit without serving.")
    ap.add_argument("--out-json", help="With --check, also write the check report as JSON to this path.")
    return ap


def registered_tools(mcp: FastMCP) -> list[str]:
    return [t.name for t in asyncio.run(mcp.list_tools())]


def run_check(
    *,
    provider: str,
    server: str,
    token_cache: Any,
    mcp: FastMCP,
    out_json: Optional[str] = None,
    write_actions_enabled: Optional[bool] = None,
) -> int:
    tools = registered_tools(mcp)
    error: Optional[str] = None
    try:
        token_cache.get_token()
    except AuthError as e:
        error = str(e)

    report = build_check_report(
        provider=provider,
        server=server,
        token_ok=error is None,
        write_actions_enabled=write_actions_enabled,
        tools=tools,
        error=error,
    )
    if out_json:
        atomic_write_json(out_json, report)

    if error:
        log.error("Token check failed", provider=provider, error=error)
        return 1
    log.info("Token check passed", provider=provider, tools=tools)
    return 0
