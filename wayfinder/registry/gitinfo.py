"""Git snapshot extraction for newly registered workspaces.

The snapshot (current branch and ``origin`` URL) is captured once at
registration and never refreshed.  Both git invocations share one deadline
(``timeout``, 30 s by default); when it expires the running process is
killed and no snapshot is recorded, so a slow repository cannot hold up
registration.

When the ``git`` executable is not installed, the snapshot is read straight
from ``.git/HEAD`` and ``.git/config``.
"""

from __future__ import annotations

import asyncio
import re
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger

from wayfinder.registry.models.record import GitSnapshot

DEFAULT_GIT_TIMEOUT = 30.0

_HEAD_REF = re.compile(r"ref: refs/heads/(.+)")
_REMOTE_URL = re.compile(r"url = (.+)")


async def read_git_snapshot(
    directory: str | Path,
    *,
    timeout: float = DEFAULT_GIT_TIMEOUT,
    git_path: str = "git",
) -> GitSnapshot | None:
    """Return the branch/remote snapshot for ``directory``, or ``None``.

    ``None`` means: not a git working copy, or extraction timed out.
    """
    directory = Path(directory)
    if not await to_thread.run_sync((directory / ".git").exists):
        return None

    try:
        async with asyncio.timeout(timeout):
            branch = await _git_output(git_path, directory, "rev-parse", "--abbrev-ref", "HEAD")
            remote = await _git_output(git_path, directory, "config", "--get", "remote.origin.url")
    except FileNotFoundError:
        logger.debug("git executable not found; reading {} directly", directory / ".git")
        return await to_thread.run_sync(partial(_read_git_files, directory / ".git"))
    except TimeoutError:
        logger.warning("Git snapshot for {} timed out after {}s; skipping", directory, timeout)
        return None

    if branch in (None, "HEAD"):
        # Detached HEAD or unborn branch: fall back to the symbolic ref on disk.
        branch = (await to_thread.run_sync(partial(_read_git_files, directory / ".git"))).branch
    return GitSnapshot(enabled=True, branch=branch, remote=remote)


async def _git_output(git_path: str, directory: Path, *args: str) -> str | None:
    """Run one git command; stripped stdout on success, ``None`` on failure."""
    proc = await asyncio.create_subprocess_exec(
        git_path,
        "-C",
        str(directory),
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        stdout, _ = await proc.communicate()
    finally:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
    if proc.returncode != 0:
        return None
    return stdout.decode("utf-8", errors="replace").strip() or None


def _read_git_files(git_dir: Path) -> GitSnapshot:
    branch: str | None = None
    remote: str | None = None
    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8")
    except OSError:
        head = ""
    if match := _HEAD_REF.search(head):
        branch = match.group(1).strip()
    try:
        config = (git_dir / "config").read_text(encoding="utf-8")
    except OSError:
        config = ""
    if match := _REMOTE_URL.search(config):
        remote = match.group(1).strip()
    return GitSnapshot(enabled=True, branch=branch, remote=remote)
