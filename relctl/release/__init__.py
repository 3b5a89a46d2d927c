"""Release bounded context.

Contracts and errors shared between the CLI and the release services live
here; the services themselves are in ``relctl.services.release``.
"""

from __future__ import annotations
