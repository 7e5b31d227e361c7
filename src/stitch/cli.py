"""Command-line interface.

    stitch [options] [entry ...]

Exactly one run mode is selected per invocation (see ``core.modes``). This
module is the only place that decides the process exit status.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO

from stitch import __version__
from stitch.core import orchestration
from stitch.core.auth import lookup_token
from stitch.core.config import RunConfig, build_run_config
from stitch.core.context import BuildContext
from stitch.core.errors import StitchError
from stitch.core.interfaces import EngineFactory, WatcherFactory
from stitch.core.loader import PluginLoader
from stitch.core.logging import BuildLog, VerbosityLevel, set_colors, set_verbosity
from stitch.core.modes import RunMode, resolve_run_mode
from stitch.core.reporter import EXIT_FAILURE, ErrorReporter
from stitch.core.session import load_engine_factory
from stitch.core.watch import WatchSupervisor
from stitch.engine import DEFAULT_BUILD_DIR

EXIT_OK = 0

EXAMPLES = """\
examples:
  build index.js and index.css into ./build
    $ stitch index.js index.css

  build to stdout, rebuilding on every change
    $ stitch --stdout --watch index.js > bundle.js

  build piped source
    $ cat index.css | stitch --type css > build.css
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stitch",
        description="Build one or more entries with a bundling engine.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("entries", nargs="*", metavar="entry", help="entry files to build")
    parser.add_argument(
        "-c", "--copy", action="store_true", default=None, help="copy assets instead of symlinking"
    )
    parser.add_argument(
        "-C", "--no-cache", dest="cache", action="store_false", default=None, help="disable the build cache"
    )
    parser.add_argument(
        "-d", "--development", action="store_true", default=None, help="development build with inline source maps"
    )
    parser.add_argument("-g", "--global", dest="global_name", metavar="name", help="expose the entry as a global")
    parser.add_argument(
        "-e",
        "--external-source-maps",
        dest="external_source_maps",
        action="store_true",
        default=None,
        help="write source maps as separate .map files",
    )
    parser.add_argument("-o", "--output", metavar="dir", help="output directory (default: <root>/build)")
    parser.add_argument("-q", "--quiet", action="store_true", help="only print errors")
    parser.add_argument("-r", "--root", metavar="dir", help="project root (default: nearest project marker)")
    parser.add_argument("-t", "--type", metavar="type", help="entry type for piped input, e.g. js or css")
    parser.add_argument(
        "-u", "--use", action="append", metavar="plugin", help="use a plugin (repeatable, applied in order)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="also log resolution and installs")
    parser.add_argument("-w", "--watch", action="store_true", help="rebuild when files change")
    parser.add_argument("-s", "--standalone", metavar="name", help="build a standalone (UMD) bundle")
    parser.add_argument("-S", "--stdout", action="store_true", help="write the single entry to stdout")
    parser.add_argument(
        "--no-color", dest="color", action="store_false", default=None, help="disable colored output"
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _isatty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _apply_logging(config: RunConfig, log: BuildLog) -> None:
    log.quiet = config.quiet
    set_colors(config.color)
    if config.quiet:
        set_verbosity(VerbosityLevel.QUIET)
    elif config.verbose:
        set_verbosity(VerbosityLevel.VERBOSE)
    else:
        set_verbosity(VerbosityLevel.NORMAL)


async def _run(mode: RunMode, ctx: BuildContext) -> int:
    try:
        await orchestration.run(mode, ctx)
    except Exception as e:
        return ctx.reporter.report(e)

    if ctx.supervisor.active:
        # Resident until the process is terminated.
        await ctx.supervisor.wait()
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    engine_factory: EngineFactory | None = None,
    watcher_factory: WatcherFactory | None = None,
) -> int:
    """Run the CLI and return the exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors and 0 after --help/--version.
        return EXIT_OK if not e.code else EXIT_FAILURE
    cwd = cwd or Path.cwd()

    log = BuildLog(quiet=bool(args.quiet))
    reporter = ErrorReporter(log, cwd)
    input_stream = stdin if stdin is not None else sys.stdin

    try:
        config = build_run_config(args, cwd=cwd, environ=environ)
        _apply_logging(config, log)

        mode = resolve_run_mode(config, stdin_is_tty=_isatty(input_stream))
        if mode is RunMode.HELP:
            parser.print_help(stdout if stdout is not None else sys.stdout)
            return EXIT_OK

        plugins = PluginLoader(config.root).load_all(config.use)
        factory = engine_factory or load_engine_factory(config.engine)
    except StitchError as e:
        return reporter.report(e)

    supervisor = WatchSupervisor(
        reporter,
        watcher_factory,
        interval=config.watch_interval,
        ignore=[config.output or config.root / DEFAULT_BUILD_DIR],
    )
    ctx = BuildContext(
        config=config,
        log=log,
        reporter=reporter,
        supervisor=supervisor,
        engine_factory=factory,
        plugins=list(plugins),
        token=lookup_token(environ),
        stdin=input_stream,
        stdout=stdout,
        cwd=cwd,
    )

    try:
        return asyncio.run(_run(mode, ctx))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_OK


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
