"""anchorsmith: build Anchor programs and submit them to a challenge service.

Three pieces make up the pipeline: a :class:`~anchorsmith.identity.signer.Signer`
holding the wallet, an :class:`~anchorsmith.workspace.builder.AnchorBuilder`
that turns source text into a program binary, and a
:class:`~anchorsmith.client.submission.SubmissionClient` that delivers it.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
