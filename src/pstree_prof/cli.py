"""pstree-prof - Command-line entry point."""

import logging
import sys

import click

from pstree_prof.errors import ProfilerError
from pstree_prof.profiler import DEFAULT_FREQUENCY, OutputFormat, Profiler, ProfilerConfig

NAME = "pstree_prof"

log = logging.getLogger(NAME)


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr, prefixed with the program name."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(f"{NAME}: %(message)s"))
    root = logging.getLogger(NAME)
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


@click.command(name="pstree-prof")
@click.option("--cmd", "command", default="", help="Command to run.")
@click.option(
    "--fmt",
    "output_format",
    default=OutputFormat.COUNT.value,
    type=click.Choice([fmt.value for fmt in OutputFormat]),
    help="Output format to summarize samples.",
)
@click.option("--freq", "frequency", default=DEFAULT_FREQUENCY, type=int, help="Sampling frequency in Hertz.")
@click.option("--verbose", "-v", is_flag=True, help="Log every sample.")
@click.pass_context
def main(ctx: click.Context, command: str, output_format: str, frequency: int, verbose: bool) -> None:
    """Run a command and profile the process tree it spawns."""
    setup_logging(verbose)

    if not command.strip():
        click.echo(ctx.get_usage(), err=True)
        log.error("a non-empty command must be specified")
        ctx.exit(2)

    try:
        config = ProfilerConfig(
            command=command,
            output_format=OutputFormat.parse(output_format),
            frequency=frequency,
        )
        Profiler(config).run()
    except ProfilerError as e:
        log.error("%s", e)
        ctx.exit(1)
    except KeyboardInterrupt:
        log.error("interrupted")
        ctx.exit(130)


if __name__ == "__main__":
    main()
