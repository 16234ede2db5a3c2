"""Directory-capability providers.

A provider is the only way to obtain a ``DirectoryHandle``: it asks the user
to pick a directory and reports one of three outcomes.  ``aborted`` means
the user walked away from the prompt; it is never an error and never leads
to deletion.  Callers serialize prompts, so a provider never sees two
requests at once.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from functools import partial
from pathlib import Path
from typing import Protocol

import click
from anyio import to_thread
from loguru import logger

from wayfinder.registry.models.enums import GrantOutcome
from wayfinder.session.capability import GrantResult, LocalDirectoryHandle

IMPORT_GUIDANCE = "Select a project folder to import"


def restore_guidance(name: str) -> str:
    """Prompt text shown when re-granting a remembered directory."""
    return f'Please select the "{name}" folder to restore access'


class CapabilityProvider(Protocol):
    async def request_directory(self, guidance: str) -> GrantResult:
        """Interactively ask for a directory.  Never raises for user choices."""
        ...


class TerminalCapabilityProvider:
    """Ask for a directory path on the terminal.

    An empty answer or Ctrl-C/Ctrl-D is ``aborted``; a path that is not an
    accessible directory is ``denied``.
    """

    async def request_directory(self, guidance: str) -> GrantResult:
        answer = await to_thread.run_sync(partial(_prompt, guidance))
        if answer is None:
            return GrantResult(GrantOutcome.ABORTED)
        return grant_path(answer)


class PresetCapabilityProvider:
    """Answer prompts from a fixed list of paths, then defer to ``fallback``.

    Used for non-interactive invocations (``wayfinder workspaces import PATH``)
    where the user has already chosen the directory on the command line.
    Without a fallback, prompts past the end of the list are ``aborted``.
    """

    def __init__(self, paths: Iterable[str | Path], fallback: CapabilityProvider | None = None) -> None:
        self._paths: deque[str | Path] = deque(paths)
        self._fallback = fallback

    async def request_directory(self, guidance: str) -> GrantResult:
        if self._paths:
            return grant_path(self._paths.popleft())
        if self._fallback is not None:
            return await self._fallback.request_directory(guidance)
        logger.debug("No preset directory left for prompt: {}", guidance)
        return GrantResult(GrantOutcome.ABORTED)


def grant_path(path: str | Path) -> GrantResult:
    """Grant a handle for ``path`` if it is an accessible directory."""
    directory = Path(path).expanduser()
    if not directory.is_dir():
        logger.info("Refusing grant: {} is not a directory", directory)
        return GrantResult(GrantOutcome.DENIED)
    return GrantResult(GrantOutcome.GRANTED, LocalDirectoryHandle(directory.resolve()))


def _prompt(guidance: str) -> str | None:
    try:
        answer = click.prompt(guidance, default="", show_default=False, err=True)
    except click.Abort:
        return None
    return answer.strip() or None
