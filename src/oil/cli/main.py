import os
import sys
from pathlib import Path

import click
from rich import print
from rich.console import Console
from rich.markup import escape

from oil import __version__
from oil.commands import CreateCommand, ViewState
from oil.controller import Controller
from oil.errors import (
    MalformedTrackerFile,
    OilError,
    TrackerFileNotFound,
)
from oil.event import EventData
from oil.interval import format_interval, parse_interval
from oil.oil_env import OilEnvironment
from oil.shared import log_msg
from oil.store import EventStore
from oil.model import store_events
from oil.tracker import Tracker

VERSION = __version__


def ensure_events_file(path: Path):
    if not path.exists():
        print(f"[yellow]⚠️ [/yellow]Events file not found. Creating new file at {path}")
        store_events(EventStore(), path)


def open_tracker(path: Path) -> Tracker:
    """
    Load the tracker file at path. A malformed file is shown to the user, who
    may replace it with an empty one.
    """
    try:
        return Tracker.from_path(path)
    except TrackerFileNotFound:
        ensure_events_file(path)
        return Tracker.from_path(path)
    except MalformedTrackerFile as e:
        print(f"[red]Could not read {path}:[/red] {escape(str(e.cause))}")
        click.echo(e.raw_text)
        if click.confirm(
            "Replace it with an empty tracker? The contents above are lost.",
            default=False,
        ):
            store_events(EventStore(), path)
            return Tracker.empty()
        raise


@click.group()
@click.version_option(VERSION, prog_name="oil", message="%(prog)s version %(version)s")
@click.option(
    "--home",
    help="Override the Oil workspace directory (equivalent to setting $OIL_HOME).",
)
@click.option(
    "--file",
    "events_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Tracker file to use. Remembered as the default for later runs.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, events_file, verbose):
    """Oil CLI – keep track of recurring events."""
    if home:
        os.environ["OIL_HOME"] = home  # Must be set before OilEnvironment is instantiated

    env = OilEnvironment()
    env.ensure(init_config=True)
    config = env.load_config()

    if events_file is not None:
        env.remember_last_open(events_file)
        path = events_file.expanduser()
    else:
        path = env.events_path

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = env
    ctx.obj["CONFIG"] = config
    ctx.obj["PATH"] = path
    ctx.obj["VERBOSE"] = verbose


def _controller(ctx) -> Controller:
    path = ctx.obj["PATH"]
    if ctx.obj["VERBOSE"]:
        print(f"[dim]Using {path}[/dim]")
    try:
        tracker = open_tracker(path)
    except OilError as e:
        print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)
    return Controller(tracker, ctx.obj["CONFIG"], console=Console())


@cli.command()
@click.pass_context
def interact(ctx):
    """Show the tracker and read commands until exit."""
    controller = _controller(ctx)
    try:
        controller.interact(ctx.obj["PATH"])
    except OilError as e:
        print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)


@cli.command("list")
@click.option("--all", "show_all", is_flag=True, help="List every event, not only due ones")
@click.pass_context
def list_events(ctx, show_all):
    """List tracked events, in the view set in config.toml unless --all is given."""
    controller = _controller(ctx)
    if show_all:
        controller.set_state(ViewState.EXTENDED)
    entries = controller.generate_events_list()
    controller.visualize(entries)


@cli.command()
@click.argument("text")
@click.option("--when", "spec", required=True, help="Recurrence, e.g. 'every 3d' or 'weekly mon 9:00'")
@click.option("--stacks", is_flag=True, help="Repeated triggers stack instead of waiting")
@click.pass_context
def add(ctx, text, spec, stacks):
    """Add an event to the tracker."""
    try:
        interval = parse_interval(spec)
    except ValueError as e:
        print(f"[red]Invalid recurrence:[/red] {e}")
        sys.exit(1)

    controller = _controller(ctx)
    path = ctx.obj["PATH"]
    event = EventData(text, interval, stacks)
    try:
        controller.tracker.apply_command(CreateCommand(event))
        controller.tracker.store_to_disk(path)
    except OilError as e:
        print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)
    log_msg(f"added from the command line: {event}")
    print(f"[green]✔ Added[/green] {text} ({interval.describe()})")


@cli.command()
@click.argument("line", nargs=-1)
@click.pass_context
def call(ctx, line):
    """Apply one line of interactive input, e.g. 'oil call 0 2' or 'oil call trig 1'."""
    controller = _controller(ctx)
    path = ctx.obj["PATH"]
    text = " ".join(line)
    try:
        if not controller.call(text):
            print(f"[red]Nothing applied for[/red] {text!r}")
            sys.exit(1)
        controller.tracker.store_to_disk(path)
    except OilError as e:
        print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)


@cli.command()
@click.argument("spec", nargs=-1, required=True)
def check(spec):
    """Check a recurrence such as 'monthly 15 12:00' without adding anything."""
    text = " ".join(spec)
    try:
        interval = parse_interval(text)
    except ValueError as e:
        print(f"[red]✘[/red] {e}")
        sys.exit(1)
    print(f"[green]✔[/green] {format_interval(interval)}: {interval.describe()}")


if __name__ == "__main__":
    cli()
