from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import click

if TYPE_CHECKING:
    from wayfinder.registry.models.api import FileEntry, WorkspaceListing
    from wayfinder.registry.models.record import WorkspaceRecord
    from wayfinder.session.capability import DirectoryHandle
    from wayfinder.session.workspace import WorkspaceSession

T = TypeVar("T")


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Console log level for workspace commands (default: from WAYFINDER_LOG_LEVEL).",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Wayfinder - workspace registry and directory access for the editor."""
    ctx.ensure_object(dict)["log_level"] = log_level


@main.command()
@click.option("--host", default=None, help="Bind host (default: from WAYFINDER_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from WAYFINDER_PORT or 8400).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the workspace registry server."""
    import uvicorn

    from wayfinder.registry.settings import get_settings

    settings = get_settings()

    uvicorn.run(
        "wayfinder.registry.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Workspace commands
# ---------------------------------------------------------------------------


def _run(func: Callable[..., Awaitable[T]], *args: Any, paths: tuple[str, ...] = ()) -> T:
    """Run ``func(session, *args)`` in a fresh session, printing error hints.

    ``paths`` answer the first directory prompts; later prompts fall back to
    the terminal.
    """
    from wayfinder.registry.errors import WorkspaceError
    from wayfinder.registry.log import CLI_FORMAT, setup_logging
    from wayfinder.registry.settings import get_settings
    from wayfinder.session.provider import PresetCapabilityProvider, TerminalCapabilityProvider
    from wayfinder.session.workspace import open_session

    settings = get_settings()
    ctx = click.get_current_context()
    setup_logging((ctx.obj or {}).get("log_level") or settings.log_level, fmt=CLI_FORMAT)
    provider = PresetCapabilityProvider(paths, fallback=TerminalCapabilityProvider())

    async def _main() -> T:
        async with open_session(settings, provider) as session:
            return await func(session, *args)

    try:
        return asyncio.run(_main())
    except WorkspaceError as exc:
        detail = str(exc)
        message = exc.hint if detail == exc.hint else f"{exc.hint} ({detail})"
        raise click.ClickException(message) from None


async def _open(session: WorkspaceSession, workspace_id: str) -> DirectoryHandle:
    handle = await session.open_workspace(workspace_id)
    if handle is None:
        raise click.ClickException(f"Workspace {workspace_id} could not be opened.")
    return handle


@main.group()
def workspaces() -> None:
    """Manage registered workspaces."""


@workspaces.command("list")
def list_() -> None:
    """List workspaces, re-granting access where needed."""

    async def _list(session: WorkspaceSession) -> WorkspaceListing:
        return await session.list_workspaces()

    listing = _run(_list)
    if listing.status == "access_lost":
        click.echo("Access to all workspaces was lost. Import them again.")
        return
    if not listing.workspaces:
        click.echo("No workspaces.")
        return
    for ws in listing.workspaces:
        branch = f" [{ws.git.branch}]" if ws.git and ws.git.branch else ""
        click.echo(f"{ws.id}  {ws.name:<24} {ws.type:<11} {ws.path}{branch}")


@workspaces.command("import")
@click.argument("path", required=False)
def import_(path: str | None) -> None:
    """Register a project directory (prompts when PATH is omitted)."""

    async def _import(session: WorkspaceSession) -> WorkspaceRecord:
        return await session.import_workspace()

    record = _run(_import, paths=(path,) if path else ())
    click.echo(f"Imported {record.name} as {record.id} ({record.type}).")


@workspaces.command("create")
@click.argument("name")
@click.option("--description", default=None, help="Text for the generated README.")
def create(name: str, description: str | None) -> None:
    """Create a new skeleton project."""

    async def _create(session: WorkspaceSession) -> WorkspaceRecord:
        return await session.create_workspace(name, description)

    record = _run(_create)
    click.echo(f"Created {record.name} as {record.id} at {record.path}.")


@workspaces.command("open")
@click.argument("workspace_id")
@click.option("--path", default=None, help="Directory to grant instead of prompting.")
def open_(workspace_id: str, path: str | None) -> None:
    """Re-establish access to a workspace."""

    async def _open_cmd(session: WorkspaceSession) -> DirectoryHandle:
        return await _open(session, workspace_id)

    handle = _run(_open_cmd, paths=(path,) if path else ())
    click.echo(f"Opened {handle.name}.")


@workspaces.command("rename")
@click.argument("workspace_id")
@click.argument("name")
def rename(workspace_id: str, name: str) -> None:
    """Change a workspace's display name."""

    async def _rename(session: WorkspaceSession) -> WorkspaceRecord:
        return await session.update_workspace(workspace_id, {"name": name})

    record = _run(_rename)
    click.echo(f"Renamed {record.id} to {record.name}.")


@workspaces.command("delete")
@click.argument("workspace_id")
def delete(workspace_id: str) -> None:
    """Forget a workspace.  The directory itself is left alone."""

    async def _delete(session: WorkspaceSession) -> None:
        await session.delete_workspace(workspace_id)

    _run(_delete)
    click.echo(f"Deleted {workspace_id}.")


@workspaces.command("tree")
@click.argument("workspace_id")
@click.option("--path", default=None, help="Directory to grant instead of prompting.")
def tree(workspace_id: str, path: str | None) -> None:
    """Print a workspace's file tree."""

    async def _tree(session: WorkspaceSession) -> list[FileEntry]:
        await _open(session, workspace_id)
        return await session.list_files(workspace_id)

    entries = _run(_tree, paths=(path,) if path else ())
    _echo_tree(entries)


def _echo_tree(entries: list[FileEntry], depth: int = 0) -> None:
    for entry in entries:
        suffix = "/" if entry.children is not None else ""
        click.echo(f"{'  ' * depth}{entry.name}{suffix}")
        if entry.children:
            _echo_tree(entry.children, depth + 1)


@workspaces.command("cat")
@click.argument("workspace_id")
@click.argument("file")
@click.option("--path", default=None, help="Directory to grant instead of prompting.")
def cat(workspace_id: str, file: str, path: str | None) -> None:
    """Print one file of a workspace."""

    async def _cat(session: WorkspaceSession) -> str:
        await _open(session, workspace_id)
        return await session.read_file(workspace_id, file)

    click.echo(_run(_cat, paths=(path,) if path else ()), nl=False)


@workspaces.command("mv")
@click.argument("workspace_id")
@click.argument("source")
@click.argument("target_dir")
@click.option("--path", default=None, help="Directory to grant instead of prompting.")
def mv(workspace_id: str, source: str, target_dir: str, path: str | None) -> None:
    """Move SOURCE into TARGET_DIR (use "/" for the workspace root)."""

    async def _mv(session: WorkspaceSession) -> str:
        await _open(session, workspace_id)
        return await session.move_entry(workspace_id, source, target_dir)

    click.echo(f"Moved {source} to {_run(_mv, paths=(path,) if path else ())}.")


if __name__ == "__main__":
    main()
