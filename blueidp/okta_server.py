from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from blueidp import log
from blueidp.config import OktaSettings, load_env_file
from blueidp.directory import DirectoryClient
from blueidp.dispatch import base_arg_parser, run_check, run_tool
from blueidp.errors import ConfigError
from blueidp.okta import OktaOperations
from blueidp.tokens import AssertionFlow, TokenCache


SERVER_NAME = "blueidp-okta"

ListLimit = Annotated[int, Field(ge=1, le=200)]
LogLimit = Annotated[int, Field(ge=1, le=50)]


def build_token_cache(settings: OktaSettings) -> TokenCache:
    flow = AssertionFlow(
        org_url=settings.org_url,
        client_id=settings.client_id,
        kid=settings.kid,
        private_key=settings.private_key,
        scopes=settings.scopes,
    )
    return TokenCache(flow)


def build_operations(settings: OktaSettings, token_cache: TokenCache) -> OktaOperations:
    return OktaOperations(DirectoryClient(token_cache, base_url=settings.org_url, name="Okta"))


def build_server(ops: OktaOperations) -> FastMCP:
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(name="okta_list_users", description="List Okta users (read only).")
    async def okta_list_users(limit: ListLimit = 5) -> str:
        return await run_tool("okta_list_users", ops.list_users, limit=limit)

    @mcp.tool(name="okta_list_groups", description="List Okta groups (read only).")
    async def okta_list_groups(limit: ListLimit = 5) -> str:
        return await run_tool("okta_list_groups", ops.list_groups, limit=limit)

    @mcp.tool(name="okta_list_apps", description="List Okta apps (read only).")
    async def okta_list_apps(limit: ListLimit = 5) -> str:
        return await run_tool("okta_list_apps", ops.list_apps, limit=limit)

    @mcp.tool(name="okta_recent_logs", description="Fetch recent Okta System Log events, newest first (read only).")
    async def okta_recent_logs(limit: LogLimit = 5) -> str:
        return await run_tool("okta_recent_logs", ops.recent_logs, limit=limit)

    return mcp


def main(argv: Optional[list[str]] = None) -> int:
    ap = base_arg_parser("Okta read-only tool server (stdio) using private_key_jwt client credentials.")
    args = ap.parse_args(argv)

    try:
        load_env_file(args.env_file)
        settings = OktaSettings.from_env()
        log.set_level(settings.log_level)
    except (ConfigError, ValueError) as e:
        log.error(f"Configuration error: {e}")
        return 1

    token_cache = build_token_cache(settings)
    mcp = build_server(build_operations(settings, token_cache))

    if args.check:
        return run_check(
            provider="okta",
            server=SERVER_NAME,
            token_cache=token_cache,
            mcp=mcp,
            out_json=args.out_json,
        )

    log.info(f"{SERVER_NAME} server running over stdio", org_url=settings.org_url)
    mcp.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
