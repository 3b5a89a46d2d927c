"""Image reference rewriting for hand-maintained deployment manifests.

The manifest is edited as text, not parsed and re-serialized: only the tag
span of the single matching ``<image>:<tag>`` reference changes, every other
byte (comments, key order, quoting, line endings) is kept.
"""

from __future__ import annotations

import re

from relctl.core.result import Err, Ok, Result
from relctl.release.errors import ReleaseError
from relctl.services.release.model import ManifestPatch

# OCI distribution spec tag grammar.
_TAG_PATTERN = r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}"
_NAME_CHARS = r"A-Za-z0-9_./-"
# A tag must end the reference: no digest pin, no tail past 128 characters.
_TAG_END = r"(?![@A-Za-z0-9_.-])"


def image_ref_pattern(image: str) -> re.Pattern[str]:
    """Pattern matching ``image:tag`` where the image name matches exactly.

    ``ghcr.io/org/app`` does not match inside ``ghcr.io/org/app-worker:v1`` or
    ``mirror.ghcr.io/org/app:v1``. Digest-pinned references
    (``app:v1@sha256:...``) and tags over 128 characters never match.
    """
    return re.compile(
        rf"(?<![{_NAME_CHARS}]){re.escape(image)}:(?P<tag>{_TAG_PATTERN}){_TAG_END}"
    )


def _line_number(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def patch_manifest(
    text: str,
    image: str,
    new_tag: str,
    *,
    path: str = "",
) -> Result[ManifestPatch, ReleaseError]:
    """Point the single reference to ``image`` at ``new_tag``."""
    matches = list(image_ref_pattern(image).finditer(text))

    if not matches:
        return Err(
            ReleaseError(
                kind="image_ref_not_found",
                message=f"no reference to {image} found in {path or 'manifest'}",
                hint=f"Expected a line containing {image}:<tag>",
                details=("matches: 0",),
            )
        )

    if len(matches) > 1:
        lines = [_line_number(text, m.start()) for m in matches]
        return Err(
            ReleaseError(
                kind="ambiguous_image_ref",
                message=f"{len(matches)} references to {image} found in {path or 'manifest'}",
                hint="Keep exactly one image reference, or narrow the image name.",
                details=tuple(f"line {n}: {m.group(0)}" for n, m in zip(lines, matches)),
            )
        )

    m = matches[0]
    start, end = m.span("tag")
    return Ok(
        ManifestPatch(
            path=path,
            image=image,
            old_tag=m.group("tag"),
            new_tag=new_tag,
            found=True,
            line_number=_line_number(text, m.start()),
            new_text=text[:start] + new_tag + text[end:],
        )
    )
