from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from blueidp import log
from blueidp.config import EntraSettings, load_env_file
from blueidp.directory import DirectoryClient
from blueidp.dispatch import EMAIL_PATTERN, base_arg_parser, run_check, run_tool
from blueidp.entra import EntraOperations
from blueidp.errors import ConfigError
from blueidp.tokens import SecretFlow, TokenCache


SERVER_NAME = "blueidp-entra"

_GATE_NOTE = "Requires ALLOW_WRITE_ACTIONS=true and approved=true and dryRun=false."

ObjectId = Annotated[str, Field(min_length=10, description="Directory object id of the service principal.")]
Justification = Annotated[str, Field(min_length=20, description="Why this action is needed (recorded in the decision).")]


def build_token_cache(settings: EntraSettings) -> TokenCache:
    flow = SecretFlow(
        tenant_id=settings.tenant_id,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        scope=settings.graph_scope,
    )
    return TokenCache(flow)


def build_operations(settings: EntraSettings, token_cache: TokenCache) -> EntraOperations:
    client = DirectoryClient(token_cache, base_url=settings.graph_base_url, name="Graph")
    return EntraOperations(client, write_actions_enabled=settings.write_actions_enabled)


def build_server(ops: EntraOperations) -> FastMCP:
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(
        name="signin_recent",
        description="Fetch recent Entra ID sign-in events from Microsoft Graph audit logs. Returns normalized fields for investigation.",
    )
    async def signin_recent(
        windowMinutes: Annotated[int, Field(ge=1, le=1440)] = 60,
        userPrincipalName: Optional[Annotated[str, Field(pattern=EMAIL_PATTERN)]] = None,
        top: Annotated[int, Field(ge=1, le=50)] = 10,
    ) -> str:
        return await run_tool(
            "signin_recent",
            ops.signin_recent,
            window_minutes=windowMinutes,
            user_principal_name=userPrincipalName,
            top=top,
        )

    @mcp.tool(
        name="investigate_service_principal",
        description="Gather Microsoft Entra service principal metadata, owners, credentials, role assignments, and compute a risk score.",
    )
    async def investigate_service_principal(
        servicePrincipalId: ObjectId,
        includeAssignments: bool = True,
        includeOwners: bool = True,
    ) -> str:
        return await run_tool(
            "investigate_service_principal",
            ops.investigate_service_principal,
            service_principal_id=servicePrincipalId,
            include_assignments=includeAssignments,
            include_owners=includeOwners,
        )

    @mcp.tool(
        name="disable_service_principal",
        description=f"Disable a service principal (accountEnabled=false). {_GATE_NOTE}",
    )
    async def disable_service_principal(
        servicePrincipalId: ObjectId,
        justification: Justification,
        approved: bool = False,
        dryRun: bool = True,
    ) -> str:
        return await run_tool(
            "disable_service_principal",
            ops.disable_service_principal,
            service_principal_id=servicePrincipalId,
            justification=justification,
            approved=approved,
            dry_run=dryRun,
        )

    @mcp.tool(
        name="revoke_service_principal_sessions",
        description=f"Revoke sign-in sessions for a service principal. {_GATE_NOTE}",
    )
    async def revoke_service_principal_sessions(
        servicePrincipalId: ObjectId,
        justification: Justification,
        approved: bool = False,
        dryRun: bool = True,
    ) -> str:
        return await run_tool(
            "revoke_service_principal_sessions",
            ops.revoke_service_principal_sessions,
            service_principal_id=servicePrincipalId,
            justification=justification,
            approved=approved,
            dry_run=dryRun,
        )

    @mcp.tool(
        name="revoke_user_sessions",
        description=f"Revoke all sign-in sessions of a user. {_GATE_NOTE}",
    )
    async def revoke_user_sessions(
        userId: Annotated[str, Field(min_length=1)],
        justification: Annotated[str, Field(min_length=10)],
        approved: bool = False,
        dryRun: bool = True,
    ) -> str:
        return await run_tool(
            "revoke_user_sessions",
            ops.revoke_user_sessions,
            user_id=userId,
            justification=justification,
            approved=approved,
            dry_run=dryRun,
        )

    return mcp


def main(argv: Optional[list[str]] = None) -> int:
    ap = base_arg_parser("Microsoft Entra ID tool server (stdio) with approval-gated write actions.")
    args = ap.parse_args(argv)

    try:
        load_env_file(args.env_file)
        settings = EntraSettings.from_env()
        log.set_level(settings.log_level)
    except (ConfigError, ValueError) as e:
        log.error(f"Configuration error: {e}")
        return 1

    token_cache = build_token_cache(settings)
    mcp = build_server(build_operations(settings, token_cache))

    if args.check:
        return run_check(
            provider="entra",
            server=SERVER_NAME,
            token_cache=token_cache,
            mcp=mcp,
            out_json=args.out_json,
            write_actions_enabled=settings.write_actions_enabled,
        )

    log.info(f"{SERVER_NAME} server running over stdio", write_actions_enabled=settings.write_actions_enabled)
    mcp.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
