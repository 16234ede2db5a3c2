"""Tests for the directory-capability providers."""

from __future__ import annotations

import click

from wayfinder.registry.models import GrantOutcome
from wayfinder.session.provider import (
    PresetCapabilityProvider,
    TerminalCapabilityProvider,
    grant_path,
    restore_guidance,
)


def test_restore_guidance() -> None:
    assert restore_guidance("proj-a") == 'Please select the "proj-a" folder to restore access'


def test_grant_path(make_project, tmp_path) -> None:
    root = make_project("proj-a", {"file.txt": "x"})

    result = grant_path(root)
    assert result.granted
    assert result.handle.name == "proj-a"

    assert grant_path(root / "file.txt").outcome == GrantOutcome.DENIED
    assert grant_path(tmp_path / "missing").outcome == GrantOutcome.DENIED


async def test_preset_provider(make_project, provider) -> None:
    root = make_project("proj-a")
    preset = PresetCapabilityProvider([root])

    assert (await preset.request_directory("first")).granted
    assert (await preset.request_directory("second")).outcome == GrantOutcome.ABORTED

    provider.deny()
    chained = PresetCapabilityProvider([], fallback=provider)
    assert (await chained.request_directory("third")).outcome == GrantOutcome.DENIED
    assert provider.prompts == ["third"]


async def test_terminal_provider(monkeypatch, make_project) -> None:
    root = make_project("proj-a")
    answers = iter([str(root), "", "/definitely/not/here"])
    monkeypatch.setattr(click, "prompt", lambda *args, **kwargs: next(answers))

    terminal = TerminalCapabilityProvider()
    granted = await terminal.request_directory("Select")
    assert granted.granted
    assert granted.handle.local_path == root.resolve()

    assert (await terminal.request_directory("Select")).outcome == GrantOutcome.ABORTED
    assert (await terminal.request_directory("Select")).outcome == GrantOutcome.DENIED


async def test_terminal_provider_interrupted(monkeypatch) -> None:
    def _interrupt(*args, **kwargs):
        raise click.Abort

    monkeypatch.setattr(click, "prompt", _interrupt)
    result = await TerminalCapabilityProvider().request_directory("Select")
    assert result.outcome == GrantOutcome.ABORTED
