"""Data contracts passed between the builder, the signer and the client.

Sub-schemas are plain dataclasses to keep serialisation lightweight while
remaining fully typed.  Wire-facing types parse with ``from_dict`` and
serialise back to the service's field names with ``to_dict``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from anchorsmith.core.errors import BuildFailed

ChallengeType = Literal["program", "client"]


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuildRequest:
    """Source handed to the builder for one build attempt."""

    program_name: str
    cargo_toml: str
    lib_rs: str


@dataclass
class WrittenFile:
    """A file injected into the scaffolded skeleton."""

    path: str
    """Path relative to the workspace root."""
    content: str


@dataclass
class BuildResult:
    """Outcome of one ``anchor build`` run.

    ``success`` reflects the exit status only.  The artifact fields are
    populated from a separate probe of ``target/deploy`` so a failed build
    can still carry a usable binary, and a clean exit may carry none.
    """

    success: bool = False
    stdout: str = ""
    stderr: str = ""
    program_so_path: str | None = None
    program_so_base64: str | None = None
    keypair_path: str | None = None
    error_message: str | None = None

    @property
    def has_artifact(self) -> bool:
        return self.program_so_base64 is not None

    def raise_for_status(self) -> BuildResult:
        """Raise :class:`BuildFailed` unless the build exited cleanly."""
        if not self.success:
            raise BuildFailed(self)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "programSoPath": self.program_so_path,
            "programSoBase64": self.program_so_base64,
            "keypairPath": self.keypair_path,
            "errorMessage": self.error_message,
        }


@dataclass
class CreatedProgram:
    """A scaffolded workspace together with its first build."""

    workspace_dir: str
    files: list[WrittenFile] = field(default_factory=list)
    build: BuildResult = field(default_factory=BuildResult)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspaceDir": self.workspace_dir,
            "files": [asdict(f) for f in self.files],
            "build": self.build.to_dict(),
        }


# ---------------------------------------------------------------------------
# Challenges & progress
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChallengeSummary:
    slug: str
    name: str = ""
    category: str = ""
    challenge_type: ChallengeType = "program"
    submission_endpoint: str = ""
    problem_description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChallengeSummary:
        return cls(
            slug=data["slug"],
            name=data.get("name", ""),
            category=data.get("category", ""),
            challenge_type=data.get("challenge_type", "program"),
            submission_endpoint=data.get("submission_endpoint", ""),
            problem_description=data.get("problem_description", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AgentInfo:
    """Registration record the service keeps for an address."""

    agent_name: str
    team: str
    address: str
    model: str | None = None
    registered_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentInfo:
        return cls(
            agent_name=data.get("agent_name", ""),
            team=data.get("team", ""),
            address=data.get("address", ""),
            model=data.get("model"),
            registered_at=data.get("registered_at", ""),
        )


@dataclass(frozen=True)
class LatestAttempt:
    passed: bool
    cu_consumed: int | None = None
    binary_size: int | None = None
    attempt_time: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LatestAttempt:
        return cls(
            passed=bool(data.get("passed", False)),
            cu_consumed=data.get("cu_consumed"),
            binary_size=data.get("binary_size"),
            attempt_time=data.get("attempt_time", ""),
        )


@dataclass(frozen=True)
class ProgressRecord:
    """Per-challenge progress; owned by the service, relayed as-is."""

    challenge: ChallengeSummary
    attempt_count: int = 0
    completed: bool = False
    latest_attempt: LatestAttempt | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressRecord:
        latest = data.get("latest_attempt")
        return cls(
            challenge=ChallengeSummary.from_dict(data),
            attempt_count=int(data.get("attempt_count", 0)),
            completed=bool(data.get("completed", False)),
            latest_attempt=LatestAttempt.from_dict(latest) if latest else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.challenge.to_dict(),
            "attempt_count": self.attempt_count,
            "completed": self.completed,
            "latest_attempt": asdict(self.latest_attempt) if self.latest_attempt else None,
        }


@dataclass(frozen=True)
class ProgressReport:
    agent: AgentInfo | None = None
    challenges: list[ProgressRecord] = field(default_factory=list)

    @property
    def registered(self) -> bool:
        return self.agent is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressReport:
        agent = data.get("agent")
        return cls(
            agent=AgentInfo.from_dict(agent) if agent else None,
            challenges=[ProgressRecord.from_dict(c) for c in data.get("challenges") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent": asdict(self.agent) if self.agent else None,
            "challenges": [c.to_dict() for c in self.challenges],
        }


# ---------------------------------------------------------------------------
# Submission envelopes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InstructionOutcome:
    """Typed view over one entry of a successful submission's ``results``."""

    success: bool
    instruction: str
    compute_units_consumed: int = 0
    execution_time: float = 0
    program_logs: list[Any] = field(default_factory=list)
    account: str | None = None
    message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstructionOutcome:
        return cls(
            success=bool(data.get("success", False)),
            instruction=str(data.get("instruction", "")),
            compute_units_consumed=data.get("compute_units_consumed", 0),
            execution_time=data.get("execution_time", 0),
            program_logs=list(data.get("program_logs") or []),
            account=data.get("account"),
            message=data.get("message"),
        )


@dataclass(frozen=True)
class SubmissionSuccess:
    """Body of a well-formed submission answer.

    ``results`` is kept exactly as the service sent it.
    """

    success: bool
    results: list[Any]

    @property
    def outcomes(self) -> list[InstructionOutcome]:
        return [InstructionOutcome.from_dict(r) for r in self.results if isinstance(r, dict)]

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "results": self.results}


@dataclass(frozen=True)
class SubmissionError:
    error: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


SubmissionBody = SubmissionSuccess | SubmissionError


@dataclass(frozen=True)
class SubmissionResult:
    """Normalised outcome of a client-challenge submission.

    ``status_code`` is always the transport status, so a 200 carrying
    ``success: false`` stays distinguishable from a 5xx or a malformed body.
    """

    ok: bool
    status_code: int
    body: SubmissionBody

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "status": self.status_code, "body": self.body.to_dict()}
