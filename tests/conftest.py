"""Shared test fixtures for anchorsmith.

Provides a deterministic signer, a fake ``anchor`` executable driven by
environment variables, and a mock HTTP transport so individual test
modules stay focused.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from solders.keypair import Keypair

from anchorsmith.identity.signer import Signer

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@pytest.fixture()
def keypair() -> Keypair:
    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture()
def signer(keypair: Keypair) -> Signer:
    return Signer(bytes(keypair))


# ---------------------------------------------------------------------------
# Fake Anchor CLI
# ---------------------------------------------------------------------------

FAKE_ANCHOR = r'''
import os
import sys
import time
from pathlib import Path

cmd = sys.argv[1]

if cmd == "init":
    code = int(os.environ.get("FAKE_ANCHOR_INIT_EXIT", "0"))
    if code:
        sys.stderr.write("init rejected\n")
        sys.exit(code)
    name = sys.argv[2]
    src = Path(name) / "programs" / name / "src"
    src.mkdir(parents=True)
    (src / "lib.rs").write_text("// generated\n")
    (src.parent / "Cargo.toml").write_text("[package]\nname = 'generated'\n")
    print(f"Initialized {name}")
    sys.exit(0)

if cmd == "build":
    name = Path.cwd().name
    lib_rs = Path("programs") / name / "src" / "lib.rs"
    print(lib_rs.read_text())

    artifact = os.environ.get("FAKE_ANCHOR_ARTIFACT", "slug")
    if artifact != "none":
        stem = name if artifact == "slug" else name.replace("-", "_")
        deploy = Path("target") / "deploy"
        deploy.mkdir(parents=True, exist_ok=True)
        (deploy / f"{stem}.so").write_bytes(b"\x7fELF-fake-program")
        (deploy / f"{stem}-keypair.json").write_text("[1, 2, 3]")
    Path("build.pid").write_text(str(os.getpid()))

    sys.stdout.flush()
    time.sleep(float(os.environ.get("FAKE_ANCHOR_SLEEP", "0")))

    code = int(os.environ.get("FAKE_ANCHOR_BUILD_EXIT", "0"))
    if code:
        sys.stderr.write("error: warnings treated as errors\n")
    sys.exit(code)

sys.stderr.write(f"unknown command {cmd}\n")
sys.exit(2)
'''

FAKE_ARTIFACT = b"\x7fELF-fake-program"


@pytest.fixture()
def fake_artifact() -> bytes:
    """Bytes the fake `anchor build` writes as the program binary."""
    return FAKE_ARTIFACT


@pytest.fixture()
def fake_anchor(tmp_path: Path) -> list[str]:
    """argv prefix that runs the fake Anchor CLI with the current interpreter."""
    script = tmp_path / "fake_anchor.py"
    script.write_text(FAKE_ANCHOR, encoding="utf-8")
    return [sys.executable, str(script)]


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    """``MockTransport`` that also keeps every request it served."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture()
def make_transport() -> Callable[[Handler], RecordingTransport]:
    return RecordingTransport
