"""Main CLI entry point for secretary.

secretary reads ``SECRETARY_<NAME>=<identifier>`` declarations from the
environment, writes each secret to a file, replaces the declaration with
``<NAME>=<path>`` and runs the given command. While the command runs the
secrets are polled for new versions; after a rotation the command receives
SIGHUP so it can re-read its files.
"""

import logging
from typing import Optional, Tuple

import click

from secretary import __version__
from secretary.utils.errors import ChildExitError, ErrorHandler, SecretaryError
from secretary.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show what would be done without executing")
@click.option("--log-file", help="Log to file in addition to console")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Configuration file (default: ./secretary.yml if present)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    dry_run: bool,
    log_file: Optional[str],
    config_path: Optional[str],
) -> None:
    """secretary - inject secrets as files and reload on rotation.

    Args:
        ctx: Click context object containing shared state
        verbose: Enable verbose output for detailed logging
        dry_run: Show what would be done without executing commands
        log_file: Optional path to log file for additional logging
        config_path: Optional configuration file
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run
    ctx.obj["log_file"] = log_file
    ctx.obj["config_path"] = config_path
    ctx.obj["error_handler"] = ErrorHandler(verbose=verbose)

    setup_logging(verbose=verbose, log_file=log_file)


def _load_settings(ctx: click.Context, **overrides):
    from secretary.config import ConfigManager

    try:
        return ConfigManager().load_settings(ctx.obj["config_path"], **overrides)
    except (SecretaryError, FileNotFoundError) as e:
        ctx.obj["error_handler"].exit_with_error(e, "Loading configuration")


_provider_option = click.option(
    "--provider",
    type=click.Choice(["auto", "aws", "awsssm", "dummy"]),
    help="Secret provider (default: auto, chosen per identifier)",
)
_path_option = click.option(
    "--path",
    "base_path",
    type=click.Path(file_okay=False),
    help="Directory to write secret files to (default: system temp dir)",
)
_prefix_option = click.option("--prefix", help="Environment variable prefix declaring secrets (default: SECRETARY_)")
_timeout_option = click.option("--timeout", help="Deadline for each secret lookup, e.g. 10s")
_region_option = click.option("--region", "aws_region", help="AWS region for AWS providers")


@cli.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    }
)
@_provider_option
@_path_option
@click.option("--frequency", help="How often to check secrets for new versions, e.g. 15s")
@_timeout_option
@_prefix_option
@click.option("--reload-signal", help="Signal sent to the command after a rotation (default: SIGHUP)")
@click.option("--shutdown-signal", "kill_signal", help="Signal sent to the command on shutdown (default: SIGKILL)")
@_region_option
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def run(
    ctx: click.Context,
    provider: Optional[str],
    base_path: Optional[str],
    frequency: Optional[str],
    timeout: Optional[str],
    prefix: Optional[str],
    reload_signal: Optional[str],
    kill_signal: Optional[str],
    aws_region: Optional[str],
    command: Tuple[str, ...],
) -> None:
    """Materialize secrets and run COMMAND under supervision.

    Put the command after "--" so its options are passed through untouched:

        secretary run --path /run/secrets -- my-server --port 8080
    """
    settings = _load_settings(
        ctx,
        provider=provider,
        base_path=base_path,
        poll_frequency=frequency,
        poll_timeout=timeout,
        prefix=prefix,
        reload_signal=reload_signal,
        kill_signal=kill_signal,
        aws_region=aws_region,
    )

    if ctx.obj["dry_run"]:
        from secretary.secrets import OSEnvironment, parse_declarations

        declarations = parse_declarations(OSEnvironment().snapshot(), settings.prefix, settings.base_path)
        for secret in declarations:
            click.echo(f"DRY RUN: Would materialize {secret.identifier} -> {secret.env_name}={secret.path}")
        if not declarations:
            click.echo(f"DRY RUN: No {settings.prefix}* variables found")
        click.echo(f"DRY RUN: Would run: {' '.join(command)}")
        return

    try:
        from secretary.runtime import Secretary

        Secretary(settings).run(list(command))

    except ChildExitError as e:
        logger.error("%s", e.message)
        ctx.exit(e.exit_code)
    except SecretaryError as e:
        ctx.obj["error_handler"].exit_with_error(e, f"Running {command[0]}")


@cli.command()
@_provider_option
@_timeout_option
@_prefix_option
@_region_option
@click.pass_context
def check(
    ctx: click.Context,
    provider: Optional[str],
    timeout: Optional[str],
    prefix: Optional[str],
    aws_region: Optional[str],
) -> None:
    """Look up the current version of every declared secret.

    Nothing is written to disk and the environment is left unchanged.
    """
    settings = _load_settings(
        ctx,
        provider=provider,
        poll_timeout=timeout,
        prefix=prefix,
        aws_region=aws_region,
    )

    try:
        from secretary.runtime import Secretary

        results = Secretary(settings).check()
    except SecretaryError as e:
        ctx.obj["error_handler"].exit_with_error(e, "Checking secrets")
        return

    if not results:
        click.echo(f"No {settings.prefix}* variables found")
        return

    failed = 0
    for entry in results:
        if entry["error"]:
            failed += 1
            click.echo(f"✗ {entry['env_name']}: {entry['identifier']} ({entry['error']})")
        else:
            click.echo(f"✓ {entry['env_name']}: {entry['identifier']} (version {entry['version']})")

    click.echo(f"\n{len(results) - failed}/{len(results)} secrets resolved")
    if failed:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
