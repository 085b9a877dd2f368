"""
shuffle.cli
===========

`shuffle` - command-line entry point for Move project workflows.

    $ shuffle new ./hello              # scaffold a project and generate bindings
    $ shuffle account                  # create the developer + test keys in ~/.shuffle
    $ shuffle build                    # compile main/ of the enclosing project
    $ shuffle codegen                  # rebuild and regenerate main/generated
    $ shuffle test unit                # Move unit tests
    $ shuffle test e2e --network localhost

Configuration
-------------
- Home dir     : `--home` or env `SHUFFLE_HOME` (default: ~/.shuffle)
- Log format   : `--log-format` or env `SHUFFLE_LOG_FORMAT` (json|text)
- Compiler     : env `SHUFFLE_MOVE_BIN` (default: move)
- Deno         : env `SHUFFLE_DENO_BIN` (default: deno)

Any ShuffleError is printed as one red line on stderr; the exit code is 2 for
compiler failures and 1 otherwise. Other exceptions are reported as internal
errors tagged with the failing command. Usage errors exit with 2.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import click
import typer

from . import logging as slog
from . import new as new_project
from .build import build_move_packages
from .codegen import generate_typescript_libraries
from .config import DEFAULT_BLOCKCHAIN, DEFAULT_NETWORK
from .errors import CompileError, ShuffleError, wrap
from .home import Home, default_home_dir
from .project import get_shuffle_project_path
from .runners import run_deno_test, run_move_unit_tests
from .version import __version__

app = typer.Typer(
    name="shuffle",
    help="Shuffle - build, bind and test Move packages.",
    no_args_is_help=True,
    add_completion=False,
)
test_app = typer.Typer(help="Run Move unit tests or end-to-end Deno tests.", no_args_is_help=True)
app.add_typer(test_app, name="test")

__all__ = ["app", "main"]


@dataclass
class Ctx:
    home: Home


@contextmanager
def _handle_errors(stage: str) -> Iterator[None]:
    try:
        yield
    except ShuffleError as e:
        typer.secho(f"error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2 if isinstance(e, CompileError) else 1) from e
    except (click.exceptions.Exit, click.exceptions.Abort, click.ClickException):
        raise
    except Exception as e:
        err = wrap(e, stage=stage)
        typer.secho(f"error: {err}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e


def _home(ctx: typer.Context) -> Home:
    c: Ctx = ctx.find_root().obj
    return c.home


def _project(start: Optional[Path]) -> Path:
    return get_shuffle_project_path(start if start is not None else Path.cwd())


@app.callback()
def _root(
    ctx: typer.Context,
    home: Optional[Path] = typer.Option(
        None, "--home", help="Shuffle home directory.", envvar="SHUFFLE_HOME"
    ),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Log format: json or text.", envvar="SHUFFLE_LOG_FORMAT"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Minimum log level."),
) -> None:
    json_logs = None if log_format is None else log_format.strip().lower() == "json"
    slog.configure(json=json_logs, level=log_level, stream=sys.stderr)
    ctx.obj = Ctx(home=Home(home if home is not None else default_home_dir()))


@app.command()
def version() -> None:
    """Print the shuffle version."""
    typer.echo(f"shuffle {__version__}")


@app.command()
def account(ctx: typer.Context) -> None:
    """Create the developer and test accounts' keys in the home directory (if missing)."""
    home = _home(ctx)
    with _handle_errors("account"):
        home.generate_shuffle_path_if_nonexistent()
        if not home.get_networks_path().exists():
            home.write_default_networks_config_into_toml()
        if not home.account_key_path.exists():
            key = home.generate_key_file(home.account_key_path)
            home.save_address(home.account_address_path, key)
        if not home.get_test_key_path().exists():
            home.generate_test_account()
        typer.echo(f"address: 0x{home.get_latest_address()}")
        typer.echo(f"test address: 0x{home.get_test_address()}")


@app.command()
def new(
    ctx: typer.Context,
    project_path: Path = typer.Argument(..., help="Directory to create."),
    blockchain: str = typer.Option(DEFAULT_BLOCKCHAIN, "--blockchain", help="Target blockchain name."),
    codegen: bool = typer.Option(True, "--codegen/--no-codegen", help="Generate TypeScript bindings."),
) -> None:
    """Create a new Shuffle project."""
    home = _home(ctx)
    with _handle_errors("new"):
        home.generate_shuffle_path_if_nonexistent()
        if not home.get_networks_path().exists():
            home.write_default_networks_config_into_toml()
        path = new_project.handle(home, blockchain, project_path, generate=codegen)
    typer.echo(f"Created project at {path}")


@app.command()
def build(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Start directory for project lookup."),
) -> None:
    """Compile the main Move package of the enclosing project."""
    with _handle_errors("build"):
        package = build_move_packages(_project(project))
    typer.echo(f"Built {package.name} ({len(package.modules)} modules)")


@app.command()
def codegen(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Start directory for project lookup."),
) -> None:
    """Rebuild the main package and regenerate its TypeScript bindings."""
    with _handle_errors("codegen"):
        target = generate_typescript_libraries(_project(project))
    typer.echo(f"Generated bindings in {target}")


@test_app.command("unit")
def test_unit(
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Start directory for project lookup."),
) -> None:
    """Run the Move unit tests of the main package."""
    with _handle_errors("test unit"):
        run_move_unit_tests(_project(project))


@test_app.command("e2e")
def test_e2e(
    ctx: typer.Context,
    network: str = typer.Option(DEFAULT_NETWORK, "--network", "-n", help="Network profile from Networks.toml."),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Start directory for project lookup."),
) -> None:
    """Run the project's e2e/ Deno tests against a network."""
    home = _home(ctx)
    with _handle_errors("test e2e"):
        project_path = _project(project)
        profile = home.read_networks_config().get(network)
        run_deno_test(
            home,
            project_path,
            profile.json_rpc_url,
            profile.dev_api_url,
            home.get_test_key_path(),
            home.get_test_address(),
        )


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the CLI. Returns an integer exit code.
    """
    try:
        rv = app(prog_name="shuffle", standalone_mode=False, args=argv)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.exceptions.Abort:
        typer.echo("Aborted!", err=True)
        return 1
    return rv if isinstance(rv, int) else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
