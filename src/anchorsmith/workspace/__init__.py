"""Isolated Anchor workspaces: naming, subprocess execution, builds."""

from __future__ import annotations

from anchorsmith.workspace.builder import AnchorBuilder
from anchorsmith.workspace.layout import program_slug, unique_workspace_name
from anchorsmith.workspace.runner import CommandOutcome, CommandRunner

__all__ = [
    "AnchorBuilder",
    "CommandOutcome",
    "CommandRunner",
    "program_slug",
    "unique_workspace_name",
]
