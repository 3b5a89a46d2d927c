from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from relctl.core.config import Config, config_path_for, load_config, load_config_or_default
from relctl.core.errors import ErrorCode
from relctl.core.result import Err
from relctl.git.repository import Repository
from relctl.output.console import ConsoleProtocol, RichConsole
from relctl.services.release.refs import GitRefStore


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo_root: Path
    store: GitRefStore
    config: Config
    console: ConsoleProtocol


def build_context(
    *,
    repo: Path,
    config_path: Path | None = None,
    quiet_stdout: bool = False,
) -> CLIContext:
    try:
        root = repo.expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --repo: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    repository = Repository(root)
    if not root.is_dir() or not repository.exists():
        typer.echo(f"error: not a git repository: {root}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    if config_path is not None:
        config_result = load_config(config_path)
    else:
        config_result = load_config_or_default(config_path_for(root))
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        repo_root=root,
        store=GitRefStore(repository),
        config=config_result.value,
        console=RichConsole(stderr=quiet_stdout),
    )
