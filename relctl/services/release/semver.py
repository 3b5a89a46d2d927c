from __future__ import annotations

import re
from dataclasses import dataclass

from relctl.core.result import Err, Ok, Result
from relctl.release.errors import ReleaseError


_VERSION_RE = re.compile(r"^v?(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)$")
_STABLE_TAG_RE = re.compile(r"^v(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)$")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"negative version component: {self}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def to_tag(self) -> str:
        return f"v{self}"

    def major_branch(self) -> str:
        return f"v{self.major}"

    def minor_branch(self) -> str:
        return f"v{self.major}.{self.minor}"

    def next_patch(self) -> SemVer:
        return SemVer(self.major, self.minor, self.patch + 1)


DEFAULT_VERSION = SemVer(0, 1, 0)


def parse_stable_tag(tag: str) -> SemVer | None:
    m = _STABLE_TAG_RE.match(tag)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def latest_version(tags: list[str]) -> SemVer | None:
    """Highest stable ``vX.Y.Z`` tag; anything else is ignored."""
    versions = [v for v in (parse_stable_tag(t) for t in tags) if v is not None]
    return max(versions) if versions else None


def parse_version(
    value: str,
    latest: SemVer | None,
    *,
    allow_default: bool = True,
    default: SemVer = DEFAULT_VERSION,
) -> Result[SemVer, ReleaseError]:
    """Parse a requested version, or derive one when ``value`` is empty.

    Derivation only ever bumps the patch of ``latest``; major and minor bumps
    need an explicit version.
    """
    text = value.strip()
    if text:
        m = _VERSION_RE.match(text)
        if m is None:
            return Err(
                ReleaseError(
                    kind="invalid_version",
                    message=f"invalid version: {value!r}",
                    hint="Expected MAJOR.MINOR.PATCH (optionally prefixed with v)",
                )
            )
        return Ok(SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3))))

    if latest is not None:
        return Ok(latest.next_patch())

    if not allow_default:
        return Err(
            ReleaseError(
                kind="no_prior_version",
                message="no version given and no prior release tag found",
                hint="Pass an explicit version for the first release.",
            )
        )
    return Ok(default)
