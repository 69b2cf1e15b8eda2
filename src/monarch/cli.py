"""Command line entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .compositor import Compositor, detect, main_config_path
from .engine import ArrangementEngine
from .extract import DEFAULT_OUTPUT_FILENAMES, ExtractionError, extract_monitors
from .utils import APP_VERSION, AppSettings, config_dir, load_app_settings
from .worker import DisplayWorker, backend_for, make_channels

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [monarch] %(levelname)s %(message)s"


def _setup_logging(verbose: bool, to_file: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if not to_file:
        logging.basicConfig(level=level if verbose else logging.WARNING, format=LOG_FORMAT)
        return
    log_file = config_dir() / "monarch.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(level=level, format=LOG_FORMAT, filename=str(log_file))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monarch",
        description="Arrange monitors for Hyprland, Sway and River.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument(
        "--compositor",
        choices=[c.value for c in Compositor if c is not Compositor.UNKNOWN],
        help="skip auto-detection",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="interactive arrangement (default)")

    ext = sub.add_parser("extract", help="move monitor lines out of the main config")
    ext.add_argument("--config", help="main config file (default: the compositor's)")
    ext.add_argument("--output", help="file name for the extracted declarations")
    ext.add_argument("-n", "--dry-run", action="store_true", help="show the plan only")

    sub.add_parser("print-config", help="print the config for the current layout")
    return parser


def _extract_filename(settings: AppSettings, config: Path) -> str | None:
    """Extract into the file monarch maintains when it sits beside *config*."""
    target = settings.monitor_config
    if target is not None and target.parent == config.parent:
        return target.name
    return None


def cmd_run(settings: AppSettings) -> int:
    backend = backend_for(settings.compositor)
    if backend is None:
        print("No supported compositor detected, use --compositor", file=sys.stderr)
        return 1
    from .tui import MonarchApp

    notifications, actions = make_channels()
    engine = ArrangementEngine(settings, actions.put_nowait)
    worker = DisplayWorker(backend, notifications, actions)
    worker.start()
    log.info("Started for %s", settings.compositor.label)
    MonarchApp(engine, notifications, worker).run()
    return 0


def cmd_extract(settings: AppSettings, args: argparse.Namespace) -> int:
    compositor = settings.compositor
    if compositor not in DEFAULT_OUTPUT_FILENAMES:
        print(f"Config extraction not supported for {compositor.label}", file=sys.stderr)
        return 1
    config = Path(args.config).expanduser() if args.config else main_config_path(compositor)
    if config is None:
        print(f"No {compositor.label} config file found", file=sys.stderr)
        return 1

    try:
        plan = extract_monitors(config, compositor, args.output or _extract_filename(settings, config))
    except ExtractionError as e:
        print(e, file=sys.stderr)
        return 1
    if not plan.has_monitors:
        print("No monitor configuration found to extract")
        return 1

    print(f"Extract to {plan.output_path}:")
    print(plan.output_content, end="")
    for path, _ in plan.modified_files:
        print(f"Remove declarations from {path}")
    if plan.source_line:
        print(f"Append '{plan.source_line}' to {plan.main_config}")
    else:
        print(f"{plan.main_config} already includes {plan.output_filename}")
    if args.dry_run:
        return 0

    try:
        output = plan.apply()
    except ExtractionError as e:
        print(e, file=sys.stderr)
        return 1
    print(f"Wrote {output}")
    return 0


def cmd_print_config(settings: AppSettings) -> int:
    backend = backend_for(settings.compositor)
    if backend is None:
        print("No supported compositor detected, use --compositor", file=sys.stderr)
        return 1
    try:
        monitors = backend.get_monitors()
    except (OSError, RuntimeError, ValueError) as e:
        print(f"Cannot query monitors: {e}", file=sys.stderr)
        return 1

    engine = ArrangementEngine(settings, lambda action: None)
    engine.set_monitors(monitors)
    print(engine.render_config(), end="")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    command = args.command or "run"
    _setup_logging(args.verbose, to_file=command == "run")

    compositor = Compositor(args.compositor) if args.compositor else detect()
    settings = load_app_settings(compositor)
    log.debug("Compositor %s, settings %s", compositor.label, settings)

    if command == "extract":
        return cmd_extract(settings, args)
    if command == "print-config":
        return cmd_print_config(settings)
    return cmd_run(settings)
