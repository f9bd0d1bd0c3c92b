"""
devbuild CLI

Registers extensions into a host's directive table, builds a custom
artifact and runs it
"""

import sys
from pathlib import Path

import click

from . import __version__
from .config import CONFIG_FILE, get_default_config, load_config
from .core.errors import DevBuildError, ProcessFailed
from .core.ordering import resolve_anchor
from .session import build_artifact, run_session
from .utils.logging import configure_logging

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=CONFIG_FILE,
    show_default=True,
    help="Config file (JSON or YAML)",
)


def exit_if_err(err: DevBuildError) -> None:
    """Print the error and exit non-zero"""
    click.echo(f"Error: {err.message}", err=True)
    code = err.returncode if isinstance(err, ProcessFailed) else 1
    if code < 0:
        # killed by signal N: shell convention 128 + N
        code = 128 - code
    sys.exit(code or 1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose):
    """devbuild - build and run a host with custom directives"""
    configure_logging("DEBUG" if verbose else "INFO")


@cli.command(context_settings={"ignore_unknown_options": True})
@config_option
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(config_path, args):
    """Build the custom host and run it with ARGS"""
    try:
        config = load_config(config_path)
        click.echo("Starting custom build...")
        code = run_session(config, list(args))
    except DevBuildError as e:
        exit_if_err(e)
    sys.exit(code)


@cli.command()
@config_option
@click.option(
    "--output", "-o", type=click.Path(dir_okay=False), required=True, help="Artifact path"
)
@click.option("--os", "target_os", default="", help="Target OS")
@click.option("--arch", "target_arch", default="", help="Target architecture")
@click.option("--compress", is_flag=True, help="Compress the archive")
def build(config_path, output, target_os, target_arch, compress):
    """Build the custom host into OUTPUT"""
    flags = ["--compress"] if compress else []
    try:
        config = load_config(config_path)
        artifact = build_artifact(config, output, target_os, target_arch, flags)
    except DevBuildError as e:
        exit_if_err(e)
    click.echo(f"Built: {artifact}")


@cli.command()
@config_option
@click.argument("source", type=click.Path(exists=True, file_okay=False))
def patch(config_path, source):
    """Patch the directives module of SOURCE in place"""
    try:
        config = load_config(config_path)
        text = config.coordinator().run(source)
    except DevBuildError as e:
        exit_if_err(e)

    if text is None:
        click.echo("No extension configured, nothing to patch")
    else:
        click.echo(f"Patched: {Path(source) / config.target_file}")


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Config file with a custom default_order",
)
def order(config_path):
    """Show the default directive order and each directive's anchor"""
    try:
        config = load_config(config_path) if config_path else get_default_config()
    except DevBuildError as e:
        exit_if_err(e)

    index = config.order_index
    for key in index.keys:
        anchor = resolve_anchor(key, None, index)
        click.echo(f"  - {key} (after: {anchor or '-'})")


def main():
    """CLI entry point"""
    cli()


if __name__ == "__main__":
    main()
