from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer

from relctl.cli.context import CLIContext, build_context
from relctl.core.errors import ErrorCode
from relctl.core.result import Err
from relctl.output.console import ConsoleProtocol, Style
from relctl.output.errors import print_release_error, release_error_exit_code
from relctl.release.contracts import BranchOptions, ReleaseRequest, ReleaseResult
from relctl.services.release.orchestrator import run_release
from relctl.services.release.semver import DEFAULT_VERSION, SemVer, latest_version, parse_version


def _exit(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def _default_version(ctx: CLIContext) -> SemVer:
    raw = ctx.config.release.default_version
    if raw is None:
        return DEFAULT_VERSION
    parsed = parse_version(raw, None)
    if isinstance(parsed, Err):
        _exit(f"invalid release.default_version in config: {raw!r}", code=ErrorCode.ENV_ERROR)
    return parsed.value


def _resolve_manifest(ctx: CLIContext, manifest: Path | None) -> Path:
    if manifest is not None:
        return manifest
    if ctx.config.release.manifest is not None:
        return ctx.repo_root / ctx.config.release.manifest
    _exit(
        "--manifest is required (or set release.manifest in relctl.toml)",
        code=ErrorCode.USER_ERROR,
    )


def _print_summary(result: ReleaseResult, console: ConsoleProtocol) -> None:
    console.header("Summary")
    console.print(f"version: {result.version or '-'}")
    console.print(f"tag:     {result.tag or '-'}")
    if result.commit:
        console.print(f"commit:  {result.commit}", Style.DIM)

    for op in result.branch_ops:
        if op.already_at_target:
            state = "unchanged"
        elif op.applied:
            state = "created" if op.is_create else "fast-forwarded"
        else:
            state = "would create" if op.is_create else "would fast-forward"
        console.print(f"branch {op.branch}: {state}")

    m = result.manifest_patch
    if m is not None and m.found:
        if m.old_tag == m.new_tag:
            console.print(f"manifest {m.path}: unchanged")
        else:
            verb = "updated" if m.applied else "would update"
            console.print(f"manifest {m.path}: {verb} {m.old_tag} -> {m.new_tag}")

    if result.completed_steps and not result.success:
        console.warning("applied before failure: " + ", ".join(result.completed_steps))


def _write_github_output(path: Path, result: ReleaseResult) -> None:
    lines = [
        f"version={result.version or ''}",
        f"tag={result.tag or ''}",
        f"dry_run={'true' if result.dry_run else 'false'}",
    ]
    try:
        with path.open("a", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
    except OSError as e:
        _exit(f"cannot write GitHub output file {path}: {e}", code=ErrorCode.IO_ERROR)


def release(
    version: str = typer.Argument(
        "",
        help="Version to release (MAJOR.MINOR.PATCH). Empty: bump the latest tag's patch.",
        show_default=False,
    ),
    image: str | None = typer.Option(None, "--image", help="Image name in the manifest"),
    manifest: Path | None = typer.Option(None, "--manifest", help="Manifest file to update"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute and print the plan only"),
    major: bool | None = typer.Option(
        None, "--major/--no-major", help="Maintain the vMAJOR tracking branch"
    ),
    minor: bool | None = typer.Option(
        None, "--minor/--no-minor", help="Maintain the vMAJOR.MINOR tracking branch"
    ),
    target: str | None = typer.Option(None, "--target", help="Commit to release (default: HEAD)"),
    repo: Path = typer.Option(Path("."), "--repo", help="Repository root"),
    config_file: Path | None = typer.Option(
        None, "--config", help="Config file (default: relctl.toml)"
    ),
    no_default: bool = typer.Option(
        False, "--no-default", help="Fail instead of defaulting when no prior tag exists"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    github_output: Path | None = typer.Option(
        None,
        "--github-output",
        envvar="GITHUB_OUTPUT",
        help="Append version/tag outputs for GitHub Actions",
    ),
) -> None:
    """Tag a release, move tracking branches and bump the manifest image."""
    ctx = build_context(repo=repo, config_path=config_file, quiet_stdout=json_output)
    cfg = ctx.config.release

    image_name = image or cfg.image
    if image_name is None:
        _exit(
            "--image is required (or set release.image in relctl.toml)",
            code=ErrorCode.USER_ERROR,
        )

    allow_default = not no_default
    if not no_default and cfg.allow_default_version is not None:
        allow_default = cfg.allow_default_version

    request = ReleaseRequest(
        version_input=version,
        manifest_path=_resolve_manifest(ctx, manifest),
        image_name=image_name,
        dry_run=dry_run,
        branch_options=BranchOptions(
            create_major_branch=major if major is not None else cfg.major_branch is not False,
            create_minor_branch=minor if minor is not None else cfg.minor_branch is not False,
        ),
        target=target or cfg.target or "HEAD",
        allow_default_version=allow_default,
        default_version=_default_version(ctx),
    )

    result = run_release(request, store=ctx.store, console=ctx.console)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_summary(result, ctx.console)

    if result.error is not None:
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error))

    if github_output is not None:
        _write_github_output(github_output, result)


def next_version(
    version: str = typer.Argument("", help="Explicit version to validate", show_default=False),
    repo: Path = typer.Option(Path("."), "--repo", help="Repository root"),
    config_file: Path | None = typer.Option(
        None, "--config", help="Config file (default: relctl.toml)"
    ),
    no_default: bool = typer.Option(
        False, "--no-default", help="Fail instead of defaulting when no prior tag exists"
    ),
    tag: bool = typer.Option(False, "--tag", help="Print the tag name (vX.Y.Z)"),
) -> None:
    """Print the version a release would use."""
    ctx = build_context(repo=repo, config_path=config_file, quiet_stdout=True)

    refs = ctx.store.list_refs()
    if isinstance(refs, Err):
        print_release_error(refs.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(refs.error))

    allow_default = not no_default
    if not no_default and ctx.config.release.allow_default_version is not None:
        allow_default = ctx.config.release.allow_default_version

    parsed = parse_version(
        version,
        latest_version(list(refs.value.tag_names())),
        allow_default=allow_default,
        default=_default_version(ctx),
    )
    if isinstance(parsed, Err):
        print_release_error(parsed.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(parsed.error))

    typer.echo(parsed.value.to_tag() if tag else str(parsed.value))
