"""CLI entry point for proctop."""

from pathlib import Path

import click
import structlog

from proctop.config import MIN_INTERVAL, LoopConfig
from proctop.errors import ProctopError, RenderFailure
from proctop.models import Metric

log = structlog.get_logger()


@click.command()
@click.version_option(package_name="proctop")
@click.option(
    "--interval",
    "-i",
    type=click.FloatRange(min=MIN_INTERVAL),
    default=1.0,
    show_default=True,
    help="Seconds between refreshes.",
)
@click.option(
    "--top",
    "-n",
    "top_n",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Number of process names to show.",
)
@click.option(
    "--sort",
    "-s",
    "metric",
    type=click.Choice([m.value for m in Metric]),
    default=Metric.MEMORY.value,
    show_default=True,
    help="Metric to rank by.",
)
@click.option("--text", "text_mode", is_flag=True, help="Print plain-text reports instead of the TUI.")
@click.option("--no-cpu", is_flag=True, help="Hide the CPU column.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write JSON logs to this file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every tick.")
@click.pass_context
def main(
    ctx: click.Context,
    interval: float,
    top_n: int,
    metric: str,
    text_mode: bool,
    no_cpu: bool,
    log_file: Path | None,
    verbose: bool,
) -> None:
    """Show the processes using the most memory or CPU, grouped by name.

    Press q (or Ctrl+C) to quit.
    """
    from proctop.log import configure_logging
    from proctop.monitor import PsutilSnapshotSource

    configure_logging(log_file, verbose)

    config = LoopConfig(
        interval=interval,
        top_n=top_n,
        metric=Metric(metric),
        show_cpu=not no_cpu,
    )
    source = PsutilSnapshotSource()

    try:
        if text_mode:
            run_text(config, source)
        else:
            run_tui(config, source)
    except ProctopError as exc:
        log.error("fatal_error", error=str(exc), kind=type(exc).__name__)
        click.echo(f"proctop: {exc}", err=True)
        ctx.exit(1)


def run_text(config: LoopConfig, source) -> None:
    """Print a report every interval until q, SIGINT or SIGTERM."""
    from proctop.loop import RefreshLoop, stop_on_signals
    from proctop.render import TextSink

    sink = TextSink(
        show_cpu=config.show_cpu,
        render_timeout=config.render_timeout,
    )
    loop = RefreshLoop(config, source, sink)
    with stop_on_signals(loop):
        loop.run()


def run_tui(config: LoopConfig, source) -> None:
    """Run the interactive display; re-raise the error that ended it, if any."""
    from proctop.app import ProctopApp

    app = ProctopApp(config, source)
    app.run()
    if app.fatal_error is not None:
        raise app.fatal_error
    if app.return_code:
        raise RenderFailure(f"Display exited with code {app.return_code}")


if __name__ == "__main__":
    main()
