"""CLI interface for stubborn"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
import yaml
from pydantic import ValidationError

from stubborn.application.executor import must_run, run
from stubborn.application.options import from_retry_config, with_label
from stubborn.domain.config import LoggingConfig, RetryConfig
from stubborn.domain.errors import ConfigurationError, unwrap
from stubborn.infrastructure.command import CommandOperation
from stubborn.infrastructure.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, logging_config: Optional[LoggingConfig] = None) -> None:
    """Setup logging configuration"""
    if verbose:
        level = logging.DEBUG
    elif logging_config is not None:
        level = getattr(logging, logging_config.level)
    else:
        level = logging.INFO
    fmt = logging_config.format if logging_config is not None else DEFAULT_FORMAT
    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _load_config(ctx: click.Context) -> ConfigManager:
    verbose = ctx.obj.get("verbose", False)
    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)
    setup_logging(verbose, config_manager.get_logging_config())
    return config_manager


def _resolve_retry_config(config_manager: ConfigManager, overrides: Dict[str, Any]) -> RetryConfig:
    """Apply CLI overrides on top of the configured retry policy

    Raises:
        ConfigurationError: If the combined policy is invalid
    """
    merged = config_manager.get_retry_config().model_dump()
    merged.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return RetryConfig(**merged)
    except ValidationError as e:
        errors = [f"  - {'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ConfigurationError("Invalid retry options:\n" + "\n".join(errors)) from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .stubborn.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """stubborn - retry commands with backoff"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command("run", context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--retries", type=int, help="Maximum number of attempts (1-100). Overrides config.")
@click.option("--delay", type=int, help="Base delay before each attempt. Overrides config.")
@click.option(
    "--time-scale",
    type=click.Choice(["nanosecond", "microsecond", "millisecond", "second"], case_sensitive=False),
    help="Unit of --delay. Overrides config.",
)
@click.option(
    "--strategy",
    type=click.Choice(["constant", "growing"], case_sensitive=False),
    help="Keep the delay constant or grow it with each attempt. Overrides config.",
)
@click.option(
    "--jitter",
    type=click.Choice(["none", "full", "equal"], case_sensitive=False),
    help="Delay randomization. Overrides config.",
)
@click.option("--label", type=str, help="Label used in log messages (default: program name)")
@click.option(
    "--fatal-exit-code",
    "fatal_exit_codes",
    type=int,
    multiple=True,
    help="Exit code that stops retrying immediately (repeatable)",
)
@click.option("--timeout", type=float, help="Timeout in seconds for each attempt")
@click.option("--must", is_flag=True, help="Terminate the process if the command never succeeds")
@click.pass_context
def run_command(
    ctx,
    command: Tuple[str, ...],
    retries: Optional[int],
    delay: Optional[int],
    time_scale: Optional[str],
    strategy: Optional[str],
    jitter: Optional[str],
    label: Optional[str],
    fatal_exit_codes: Tuple[int, ...],
    timeout: Optional[float],
    must: bool,
):
    """Run a command until it exits with status 0.

    COMMAND: Program and arguments, after '--'
    """
    verbose = ctx.obj.get("verbose", False)
    config_manager = _load_config(ctx)

    try:
        retry_config = _resolve_retry_config(
            config_manager,
            {
                "max_retries": retries,
                "delay": delay,
                "time_scale": time_scale.lower() if time_scale else None,
                "strategy": strategy.lower() if strategy else None,
                "jitter": jitter.lower() if jitter else None,
                "label": label,
            },
        )
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    operation = CommandOperation(command, fatal_exit_codes=fatal_exit_codes, timeout=timeout)
    options = [with_label(operation.name), *from_retry_config(retry_config)]
    logger.info(
        f"Running '{' '.join(command)}' with up to {retry_config.max_retries} attempts "
        f"({retry_config.strategy} delay of {retry_config.delay} {retry_config.time_scale})"
    )

    if must:
        output = must_run(operation, *options)
    else:
        output, err = run(operation, *options)
        if err is not None:
            _die(f"Command failed: {unwrap(err)}", verbose=verbose, exc=err)

    click.echo(output, nl=False)


@cli.command("show-config")
@click.pass_context
def show_config(ctx):
    """Print the effective configuration as YAML."""
    config_manager = _load_config(ctx)
    click.echo(yaml.safe_dump(config_manager.config.model_dump(), sort_keys=False), nl=False)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
