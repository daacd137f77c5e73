"""
Click CLI for the hanging droplets cleaner.
"""

import functools
import logging
import signal
import sys
from typing import Any, Dict

import click

from .cleaner import CleanupResult, HangingDropletsCleaner
from .client import DigitalOceanClient
from .config import DEFAULT_DROPLET_AGE, DEFAULT_INTERVAL, CleanerSettings, load_settings
from .errors import CleanerError, ConfigurationError
from .log import configure_logging
from .machines import DEFAULT_MACHINES_DIRECTORY, MachinesFinder
from .metrics import MetricsServer, build_registry
from .service import ServiceRunner
from .version import APP_VERSION

logger = logging.getLogger(__name__)

CONFIRM_MESSAGE = "Are you sure you want to delete droplets?"


def _print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    click.echo(APP_VERSION.extended(), nl=False)
    ctx.exit()


def cleaner_options(f):
    """Options shared by every command that builds a cleaner."""
    options = [
        click.option("--digitalocean-token", envvar="DIGITALOCEAN_TOKEN", default="", show_envvar=True,
                     help="DigitalOcean API Token"),
        click.option("--machines-directory", envvar="MACHINES_DIRECTORY", default=DEFAULT_MACHINES_DIRECTORY,
                     show_default=True, show_envvar=True,
                     help="Absolute path to directory where Docker Machine machines configuration is stored"),
        click.option("--droplet-age", envvar="DROPLET_AGE", type=int, default=DEFAULT_DROPLET_AGE,
                     show_default=True, show_envvar=True, help="Minimal age of droplet that can be removed (seconds)"),
        click.option("--runner-prefix", "runner_prefixes", envvar="RUNNER_PREFIX", multiple=True,
                     help="Prefix of runner's droplet name (repeatable)"),
        click.option("--skip-zombies", is_flag=True, help="Don't remove machine folders without a droplet"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _settings(**values: Any) -> CleanerSettings:
    try:
        return load_settings(**values)
    except ConfigurationError as e:
        _fatal(f"Invalid configuration: {e}")


def _fatal(message: str) -> None:
    logger.error(message)
    sys.exit(1)


def build_cleaner(settings: CleanerSettings) -> HangingDropletsCleaner:
    """
    Wire the DigitalOcean client and machines finder into a cleaner.

    Args:
        settings: Validated settings

    Returns:
        A non-destructive HangingDropletsCleaner
    """
    return HangingDropletsCleaner(
        client=DigitalOceanClient(settings.digitalocean_token),
        machines_finder=MachinesFinder(settings.machines_directory),
        droplet_age=settings.droplet_age,
        runner_prefixes=settings.runner_prefixes,
        prune_zombies=settings.prune_zombies,
    )


def _get_cleaner(settings: CleanerSettings) -> HangingDropletsCleaner:
    try:
        return build_cleaner(settings)
    except ConfigurationError as e:
        _fatal(f"Failed to start HangingDropletsCleaner: {e}")


def _cleaner_values(options: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "digitalocean_token": options["digitalocean_token"],
        "machines_directory": options["machines_directory"],
        "droplet_age": options["droplet_age"],
        "runner_prefixes": list(options["runner_prefixes"]),
        "prune_zombies": not options["skip_zombies"],
    }


def confirm(message: str) -> bool:
    """Ask for an explicit 'yes'; anything else declines."""
    answer = click.prompt(f"{message} [yes/no]", default="", show_default=False, prompt_suffix=" -> ")
    return answer.strip().lower() == "yes"


def _log_result(result: CleanupResult) -> None:
    if result.skipped:
        logger.debug("No droplets old enough to reconcile")
        return
    if result.stop_failed or result.delete_failed:
        logger.warning(
            f"{len(result.stop_failed)} stop and {len(result.delete_failed)} delete errors in this pass"
        )
    if result.pruned_machines:
        logger.info(f"Removed {len(result.pruned_machines)} zombie machine folders")


@click.group()
@click.option("--debug", envvar="DEBUG", is_flag=True, help="Set debug log-level")
@click.option("--no-color", envvar="NO_COLOR", is_flag=True, help="Disable output coloring")
@click.option("--version", is_flag=True, expose_value=False, is_eager=True, callback=_print_version,
              help="Show the version and exit.")
def main(debug: bool, no_color: bool):
    """
    Clears hanging droplets that are unmanaged by GitLab Runner.
    """
    configure_logging(debug=debug, no_color=no_color)
    logger.info(f"Starting {APP_VERSION.line()}")


@main.command("one-shot")
@click.option("--delete", is_flag=True, help="Delete droplets")
@cleaner_options
def one_shot(delete: bool, **options):
    """
    Start hanging droplets cleaner in a one-shot mode.
    """
    logger.info("Running in one-shot mode")

    settings = _settings(**_cleaner_values(options))
    cleaner = _get_cleaner(settings)

    if delete and confirm(CONFIRM_MESSAGE):
        logger.warning("Running with 'delete' flag. All droplets matching requirements will be removed!")
        cleaner.enable_delete()
    else:
        logger.info("Running without 'delete' flag. Will not remove any droplet.")

    try:
        result = cleaner.clean()
    except CleanerError as e:
        _fatal(f"Error during cleanup: {e}")
        return

    _log_result(result)


@main.command("service")
@click.option("--listen", envvar="LISTEN", default=None, show_envvar=True, help="Metrics server listen address")
@click.option("--interval", envvar="INTERVAL", type=int, default=DEFAULT_INTERVAL, show_default=True,
              show_envvar=True, help="Number of seconds between cleanup attempts")
@cleaner_options
def service(listen: str, interval: int, **options):
    """
    Start hanging droplets cleaner in a service mode.
    """
    logger.info("Running in service mode")

    settings = _settings(listen=listen, interval=interval, **_cleaner_values(options))
    cleaner = _get_cleaner(settings)
    cleaner.enable_delete()

    runner = ServiceRunner(cleaner, settings.interval)

    server = None
    if settings.listen_address:
        host, port = settings.listen_address
        server = MetricsServer(build_registry(cleaner), host, port)
        try:
            server.start()
        except RuntimeError as e:
            _fatal(f"Failed to start metrics server: {e}")
    else:
        logger.info("Metrics server disabled")

    signal.signal(signal.SIGTERM, functools.partial(_stop_runner, runner))
    try:
        runner.run_forever()
    except KeyboardInterrupt:
        runner.stop()
    finally:
        if server is not None:
            server.stop()


def _stop_runner(runner: ServiceRunner, signum, frame) -> None:
    logger.info(f"Received signal {signum}, stopping")
    runner.stop()


if __name__ == '__main__':
    main()
