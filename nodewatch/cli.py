"""nodewatch command line interface"""
import sys
import threading
from typing import List, Optional

import click

from .api import create_app, start_api_server
from .config import configure_logging, load_config
from .exceptions import ConfigurationError
from .metrics import MonitorMetrics
from .monitor import Monitor
from .report import render_node
from .store import HeaderStore



def parse_heights(value: Optional[str]) -> Optional[List[int]]:
    """Parse "100,101" or "100-110" (or a mix) into a list of heights."""
    if not value:
        return None
    heights: List[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = (int(x) for x in part.split("-", 1))
            step = 1 if end >= start else -1
            heights.extend(range(start, end + step, step))
        else:
            heights.append(int(part))
    return heights


def _load(config_path: str, log_level: Optional[str], json_output: bool = False):
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    configure_logging(log_level or config.settings.log_level, json_output=json_output)
    return config


def _heights_option(value: Optional[str]) -> Optional[List[int]]:
    try:
        return parse_heights(value)
    except ValueError:
        raise click.BadParameter(f"Invalid heights: {value}", param_hint="--heights")


@click.group()
def cli():
    """Compare chain heads across Ethereum RPC providers"""
    pass


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True), required=True,
              help="Path to the JSON node configuration")
@click.option("--log-level", type=str, default=None, help="Override the configured log level")
@click.option("--no-api", is_flag=True, help="Poll only, do not serve the dashboard API")
def run(config_path: str, log_level: Optional[str], no_api: bool):
    """Poll all nodes forever and serve the latest report"""
    config = _load(config_path, log_level, json_output=True)
    settings = config.settings
    store = HeaderStore(settings.db_url)
    metrics = MonitorMetrics()
    try:
        monitor = Monitor.from_config(config, store=store, metrics=metrics)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    stop = threading.Event()
    if no_api:
        try:
            monitor.run(stop)
        except KeyboardInterrupt:
            stop.set()
        finally:
            monitor.close()
        return

    poller = threading.Thread(target=monitor.run, args=(stop,), name="monitor", daemon=True)
    poller.start()
    try:
        start_api_server(create_app(monitor, store=store, metrics=metrics),
                         settings.api_host, settings.api_port)
    finally:
        stop.set()
        poller.join(timeout=settings.poll_interval)
        monitor.close()


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True), required=True,
              help="Path to the JSON node configuration")
@click.option("--heights", type=str, default=None,
              help="Heights to compare, e.g. 100,101 or 100-110 (default: recent heads)")
@click.option("--json", "as_json", is_flag=True, help="Print the report document as JSON")
@click.option("--log-level", type=str, default="WARNING", help="Log level")
def report(config_path: str, heights: Optional[str], as_json: bool, log_level: str):
    """Poll once and print a comparison report"""
    config = _load(config_path, log_level)
    requested = _heights_option(heights)
    store = HeaderStore(config.settings.db_url) if config.settings.db_url else None
    try:
        monitor = Monitor.from_config(config, store=store)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        errors = monitor.poll_once()
        for name, error in errors.items():
            if error is not None:
                click.echo(f"{name}: unreachable ({error})", err=True)
        result = monitor.build_report(requested)
    finally:
        monitor.close()

    if as_json:
        click.echo(result.to_json(indent=2))
        return
    click.echo(result.render_table())
    divergent = result.divergent_heights()
    if divergent:
        click.echo(f"\nDivergent heights: {', '.join(str(h) for h in divergent)}")


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True), required=True,
              help="Path to the JSON node configuration")
@click.argument("name")
@click.option("--heights", type=str, default=None,
              help="Heights to list (default: recent heads)")
@click.option("--log-level", type=str, default="WARNING", help="Log level")
def node(config_path: str, name: str, heights: Optional[str], log_level: str):
    """Print what a single node reports at each height"""
    config = _load(config_path, log_level)
    requested = _heights_option(heights)
    try:
        single = config.model_copy(update={"nodes": [config.get_node(name)]})
        monitor = Monitor.from_config(single)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        monitor.poll_once()
        target = monitor.nodes[0]
        click.echo(render_node(target, requested if requested is not None
                               else monitor.report_heights()))
    finally:
        monitor.close()


def main():
    cli()
