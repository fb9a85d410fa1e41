"""Anchor builder: scaffold a workspace, inject source, build, harvest.

Lifecycle of :meth:`AnchorBuilder.build`
----------------------------------------
1. Derive the slug and a unique workspace name from the program name.
2. Make sure the output root exists.
3. ``anchor init <workspace-name>`` inside the output root.
4. Overwrite ``programs/<name>/src/lib.rs`` and ``programs/<name>/Cargo.toml``.
5. ``anchor build`` inside the workspace.
6. Probe ``target/deploy`` for the binary and keypair, whatever the exit
   status of step 5 was.
7. Report both signals on a :class:`BuildResult`.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path

from anchorsmith.core.errors import FilesystemError, ScaffoldFailed
from anchorsmith.core.models import BuildRequest, BuildResult, CreatedProgram, WrittenFile
from anchorsmith.workspace.layout import (
    artifact_candidates,
    deploy_dir,
    ensure_output_root,
    program_dir,
    unique_workspace_name,
)
from anchorsmith.workspace.runner import CommandOutcome, CommandRunner

logger = logging.getLogger(__name__)


class AnchorBuilder:
    """Turn caller-supplied ``Cargo.toml`` + ``lib.rs`` into a program binary.

    Parameters
    ----------
    output_root:
        Directory that receives one subdirectory per build.
    anchor_command:
        argv prefix for the Anchor CLI (``["anchor"]`` by default).
    scaffold_timeout / build_timeout:
        Seconds before ``anchor init`` / ``anchor build`` is killed.
    runner:
        Subprocess runner; built from *extra_env* when omitted.
    """

    def __init__(
        self,
        output_root: str | Path | None = None,
        *,
        anchor_command: Sequence[str] | None = None,
        scaffold_timeout: float | None = None,
        build_timeout: float | None = None,
        extra_env: Mapping[str, str] | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        from anchorsmith.config.settings import settings  # noqa: PLC0415

        cfg = settings.builder
        self._output_root = Path(output_root if output_root is not None else cfg.output_root)
        self._anchor = list(anchor_command or cfg.anchor_command)
        self._scaffold_timeout = (
            scaffold_timeout if scaffold_timeout is not None else cfg.scaffold_timeout_seconds
        )
        self._build_timeout = build_timeout if build_timeout is not None else cfg.build_timeout_seconds
        self._runner = runner or CommandRunner(extra_env if extra_env is not None else cfg.extra_env)

    @property
    def output_root(self) -> Path:
        return self._output_root

    # -- public API ---------------------------------------------------------

    async def build(self, request: BuildRequest) -> CreatedProgram:
        """Scaffold, inject and build one program.

        Raises
        ------
        ScaffoldFailed
            ``anchor init`` is missing, timed out or exited nonzero.
        FilesystemError
            The output root or a source file could not be written.
        """
        root = ensure_output_root(self._output_root)
        name = unique_workspace_name(request.program_name)
        workspace = root / name
        logger.info("Allocating workspace %s for '%s'.", workspace, request.program_name)

        await self._scaffold(root, name)
        files = self._write_sources(workspace, name, request)
        build = await self._build(workspace, name)
        return CreatedProgram(workspace_dir=str(workspace), files=files, build=build)

    async def rebuild(self, workspace_dir: str | Path) -> BuildResult:
        """Re-run ``anchor build`` in an existing workspace.

        The binary is the first ``.so`` found in ``target/deploy``.
        """
        workspace = Path(workspace_dir).expanduser().resolve()
        if not workspace.is_dir():
            raise FilesystemError(f"Workspace {workspace} does not exist", str(workspace))

        outcome = await self._run_build(workspace)
        deploy = deploy_dir(workspace)
        binaries = sorted(deploy.glob("*.so")) if deploy.is_dir() else []
        so_path = binaries[0] if binaries else None
        keypair = so_path.with_name(f"{so_path.stem}-keypair.json") if so_path else None
        return self._result(outcome, so_path, keypair)

    # -- steps --------------------------------------------------------------

    async def _scaffold(self, root: Path, name: str) -> None:
        argv = [*self._anchor, "init", name]
        try:
            outcome = await self._runner.run(argv, cwd=root, timeout=self._scaffold_timeout)
        except FileNotFoundError as exc:
            raise ScaffoldFailed(f"Failed to scaffold Anchor project: {exc}") from exc

        if not outcome.ok:
            raise ScaffoldFailed(
                f"Failed to scaffold Anchor project: {outcome.failure_message()}\n{outcome.stderr}",
                stdout=outcome.stdout,
                stderr=outcome.stderr,
            )
        logger.debug("Scaffolded %s in %.1fms.", name, outcome.duration_ms)

    def _write_sources(self, workspace: Path, name: str, request: BuildRequest) -> list[WrittenFile]:
        program = program_dir(workspace, name)
        targets = [
            (program / "src" / "lib.rs", request.lib_rs),
            (program / "Cargo.toml", request.cargo_toml),
        ]

        files: list[WrittenFile] = []
        for path, content in targets:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
            except OSError as exc:
                raise FilesystemError(f"Cannot write {path}: {exc}", str(path)) from exc
            files.append(WrittenFile(path=str(path.relative_to(workspace)), content=content))
        return files

    async def _build(self, workspace: Path, name: str) -> BuildResult:
        outcome = await self._run_build(workspace)
        so_candidates, keypair_candidates = artifact_candidates(workspace, name)
        so_path = next((p for p in so_candidates if p.is_file()), None)
        keypair = next((p for p in keypair_candidates if p.is_file()), None)
        return self._result(outcome, so_path, keypair)

    async def _run_build(self, workspace: Path) -> CommandOutcome:
        argv = [*self._anchor, "build"]
        try:
            return await self._runner.run(argv, cwd=workspace, timeout=self._build_timeout)
        except FileNotFoundError as exc:
            return CommandOutcome(argv=argv, stderr=str(exc), exit_code=127)

    # -- result assembly ----------------------------------------------------

    def _result(
        self,
        outcome: CommandOutcome,
        so_path: Path | None,
        keypair: Path | None,
    ) -> BuildResult:
        so_b64: str | None = None
        if so_path is not None and so_path.is_file():
            try:
                so_b64 = base64.b64encode(so_path.read_bytes()).decode("ascii")
            except OSError as exc:
                raise FilesystemError(f"Cannot read artifact {so_path}: {exc}", str(so_path)) from exc
        else:
            so_path = None

        if keypair is not None and not keypair.is_file():
            keypair = None

        result = BuildResult(
            success=outcome.ok,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            program_so_path=str(so_path) if so_path else None,
            program_so_base64=so_b64,
            keypair_path=str(keypair) if keypair else None,
            error_message=None if outcome.ok else outcome.failure_message(),
        )
        if result.success:
            logger.info("anchor build succeeded (artifact=%s).", result.program_so_path or "none")
        else:
            logger.warning(
                "anchor build failed: %s (artifact=%s).",
                result.error_message,
                result.program_so_path or "none",
            )
        return result
