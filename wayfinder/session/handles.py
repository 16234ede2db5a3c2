"""In-process handle cache.

Maps workspace ids to live ``DirectoryHandle`` objects for the current
session.  Ephemeral: empty when the session starts, and every entry is
revalidated before use.  One cache belongs to one ``WorkspaceSession``;
it is passed explicitly, never shared through module state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from wayfinder.session.capability import DirectoryHandle


class HandleCache:
    def __init__(self) -> None:
        self._handles: dict[str, DirectoryHandle] = {}

    # -- Mutation --------------------------------------------------------------

    def put(self, workspace_id: str, handle: DirectoryHandle) -> None:
        logger.debug("Handle cache: put {} ({})", workspace_id, handle.name)
        self._handles[workspace_id] = handle

    def evict(self, workspace_id: str) -> DirectoryHandle | None:
        handle = self._handles.pop(workspace_id, None)
        if handle is not None:
            logger.debug("Handle cache: evict {}", workspace_id)
        return handle

    def clear(self) -> None:
        self._handles.clear()

    # -- Query -----------------------------------------------------------------

    def get(self, workspace_id: str) -> DirectoryHandle | None:
        return self._handles.get(workspace_id)

    def ids(self) -> list[str]:
        """Snapshot of cached ids."""
        return list(self._handles)

    def __contains__(self, workspace_id: object) -> bool:
        return workspace_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)
