"""Error taxonomy for the build-and-submit pipeline.

Setup errors that leave nothing usable behind (bad key material, a missing
scaffold tool) are raised.  Failures that still carry diagnostic output
(a failed ``anchor build``, a non-JSON submission response) travel as data
on the result objects instead; ``BuildFailed`` only exists so callers can
opt into raising via :meth:`BuildResult.raise_for_status`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from anchorsmith.core.models import BuildResult


class AnchorsmithError(Exception):
    """Base class for every error raised by this package."""


class InvalidKeyMaterial(AnchorsmithError, ValueError):
    """The secret key did not decode to exactly 64 bytes."""


class ScaffoldFailed(AnchorsmithError):
    """``anchor init`` could not produce a project skeleton."""

    def __init__(self, message: str, *, stdout: str = "", stderr: str = "") -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr


class BuildFailed(AnchorsmithError):
    """``anchor build`` exited unsuccessfully.

    The artifact may still exist; inspect :attr:`result`.
    """

    def __init__(self, result: BuildResult) -> None:
        super().__init__(result.error_message or "anchor build failed")
        self.result = result


class FilesystemError(AnchorsmithError, OSError):
    """Creating a directory, writing a source file or reading an artifact failed."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class TransportError(AnchorsmithError):
    """A read endpoint answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, *, status_code: int, reason: str = "", text: str = "") -> None:
        super().__init__(f"{message}: {status_code} {reason}".rstrip())
        self.status_code = status_code
        self.reason = reason
        self.text = text


class MissingPayload(AnchorsmithError, ValueError):
    """A client submission was given neither a transaction nor its base64 form."""
