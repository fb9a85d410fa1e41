"""Typer entry point for the anchorsmith command line.

Commands
--------
address         Print the wallet address.
sign            Sign bytes and print the base58 signature.
encode          Base58-encode bytes.
challenges      List available challenges.
challenge       Show one challenge.
progress        Show progress for an address.
build           Scaffold and build an Anchor program from source files.
rebuild         Re-run ``anchor build`` in an existing workspace.
submit-program  Upload a compiled ``.so`` for a program challenge.
submit-client   Submit a base64 transaction for a client challenge.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import typer
from rich.console import Console

from anchorsmith.core.errors import AnchorsmithError, InvalidKeyMaterial

if TYPE_CHECKING:
    from anchorsmith.client.submission import SubmissionClient
    from anchorsmith.identity.signer import Signer

app = typer.Typer(
    name="anchorsmith",
    help="Build Anchor programs and submit them to the challenge service.",
    add_completion=False,
)

console = Console()


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )


def _decode_input(data: str, encoding: str) -> bytes:
    """Interpret *data* as base64 (default), UTF-8 text or hex."""
    try:
        if encoding == "utf8":
            return data.encode("utf-8")
        if encoding == "hex":
            return bytes.fromhex(data.removeprefix("0x"))
        if encoding == "base64":
            return base64.b64decode(data, validate=True)
    except ValueError as exc:
        raise typer.BadParameter(f"Input is not valid {encoding}: {exc}") from exc
    raise typer.BadParameter(f"Unknown encoding: {encoding}")


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False))


def _signer() -> Signer:
    from anchorsmith.config.settings import get_settings
    from anchorsmith.identity.signer import Signer

    key = get_settings().solana_private_key
    if not key:
        typer.echo("SOLANA_PRIVATE_KEY must be set.", err=True)
        raise typer.Exit(1)
    try:
        return Signer(key)
    except InvalidKeyMaterial as exc:
        typer.echo(f"SOLANA_PRIVATE_KEY is invalid: {exc}", err=True)
        raise typer.Exit(1) from exc


def _client() -> SubmissionClient:
    from anchorsmith.client.submission import SubmissionClient
    from anchorsmith.config.settings import get_settings

    return SubmissionClient(get_settings().api_url, _signer())


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except AnchorsmithError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    except httpx.HTTPError as exc:
        typer.echo(f"Error: request failed: {exc!r}", err=True)
        raise typer.Exit(1) from exc


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


@app.command()
def address() -> None:
    """Print the active wallet address (base58)."""
    typer.echo(_signer().address)


@app.command()
def sign(
    data: str = typer.Argument(..., help="Input data to sign."),
    encoding: str = typer.Option("base64", "--encoding", "-e", help="base64, utf8 or hex."),
) -> None:
    """Sign bytes with the wallet and print the base58 signature."""
    typer.echo(_signer().sign_encoded(_decode_input(data, encoding)))


@app.command()
def encode(
    data: str = typer.Argument(..., help="Input data to encode."),
    encoding: str = typer.Option("base64", "--encoding", "-e", help="base64, utf8 or hex."),
) -> None:
    """Encode bytes as base58."""
    from anchorsmith.identity.signer import encode_base58

    typer.echo(encode_base58(_decode_input(data, encoding)))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


@app.command()
def challenges(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """List all available challenges."""
    _setup_logging(verbose)

    async def _go() -> list[dict[str, Any]]:
        async with _client() as client:
            return [c.to_dict() for c in await client.list_challenges()]

    _print_json(_run(_go()))


@app.command()
def challenge(
    namespace: str = typer.Argument(..., help="Challenge namespace, e.g. 'program'."),
    key: str = typer.Argument(..., help="Challenge key."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show details for one challenge."""
    _setup_logging(verbose)

    async def _go() -> dict[str, Any]:
        async with _client() as client:
            return (await client.get_challenge(namespace, key)).to_dict()

    _print_json(_run(_go()))


@app.command()
def progress(
    address_: str = typer.Option("", "--address", "-a", help="Defaults to the wallet address."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show challenge progress for an address."""
    _setup_logging(verbose)

    async def _go() -> dict[str, Any]:
        async with _client() as client:
            return (await client.get_progress(address_ or None)).to_dict()

    _print_json(_run(_go()))


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


@app.command()
def build(
    program_name: str = typer.Argument(..., help="Name of the Anchor program."),
    cargo_toml: Path = typer.Argument(..., exists=True, dir_okay=False, help="Cargo.toml to inject."),
    lib_rs: Path = typer.Argument(..., exists=True, dir_okay=False, help="lib.rs to inject."),
    include_binary: bool = typer.Option(False, "--include-binary", help="Print the base64 artifact too."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Scaffold a workspace with ``anchor init``, inject the sources and build."""
    _setup_logging(verbose)
    from anchorsmith.core.models import BuildRequest
    from anchorsmith.workspace.builder import AnchorBuilder

    request = BuildRequest(
        program_name=program_name,
        cargo_toml=cargo_toml.read_text(encoding="utf-8"),
        lib_rs=lib_rs.read_text(encoding="utf-8"),
    )
    created = _run(AnchorBuilder().build(request))
    payload = created.to_dict()
    if not include_binary:
        payload["build"].pop("programSoBase64", None)
    _print_json(payload)
    if not created.build.success:
        raise typer.Exit(1)


@app.command()
def rebuild(
    workspace_dir: Path = typer.Argument(..., exists=True, file_okay=False, help="Anchor workspace."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Re-run ``anchor build`` in an existing workspace."""
    _setup_logging(verbose)
    from anchorsmith.workspace.builder import AnchorBuilder

    result = _run(AnchorBuilder().rebuild(workspace_dir))
    payload = result.to_dict()
    payload.pop("programSoBase64", None)
    _print_json(payload)
    if not result.success:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


@app.command("submit-program")
def submit_program(
    slug: str = typer.Argument(..., help="Challenge slug."),
    program_path: Path = typer.Argument(..., help="Compiled program binary (.so)."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Submit a compiled program for a program challenge."""
    _setup_logging(verbose)

    async def _go() -> dict[str, Any]:
        async with _client() as client:
            response = await client.submit_program_file(slug, program_path)
            return {"status": response.status_code, "ok": response.is_success, "body": response.text}

    _print_json(_run(_go()))


@app.command("submit-client")
def submit_client(
    slug: str = typer.Argument(..., help="Challenge slug."),
    transaction_base64: str = typer.Argument(..., help="Base64 VersionedTransaction, already signed."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Submit a transaction for a client challenge."""
    _setup_logging(verbose)

    async def _go() -> dict[str, Any]:
        async with _client() as client:
            result = await client.submit_client(slug, transaction_base64=transaction_base64)
            return result.to_dict()

    payload = _run(_go())
    _print_json(payload)
    if not payload["ok"]:
        raise typer.Exit(1)


def main() -> int:
    """Entry point used by the console script and ``python -m anchorsmith``."""
    app()
    return 0
