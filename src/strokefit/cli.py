"""
Command-line interface for strokefit.

    strokefit fit -i stroke.json -o out/ [--debug] [--trace]
    strokefit algorithms
    strokefit init-config [--out strokefit_config.yaml]
"""

import argparse
import sys

from strokefit.config import load_config, save_default_config
from strokefit.tracer import configure_tracer, get_tracer


def _add_trace_options(parser):
    group = parser.add_argument_group("tracing")
    group.add_argument("--trace", action="store_true", help="Enable runtime tracing")
    group.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    group.add_argument("--trace-file", default=None, help="Also write trace lines to this file")
    group.add_argument("--trace-json", action="store_true", help="Write trace lines as JSON")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="strokefit",
        description="Fit candidate lines, arcs and clothoids to hand-drawn strokes",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    fit = subparsers.add_parser("fit", help="Fit candidate primitives to one stroke")
    fit.add_argument("--input", "-i", required=True, help="Stroke JSON file")
    fit.add_argument("--out", "-o", required=True, help="Output directory")
    fit.add_argument("--config", "-c", default=None, help="YAML configuration file")
    fit.add_argument("--algorithm", "-a", default=None,
                     help="Fitting algorithm name, overriding the configuration")
    fit.add_argument("--debug", action="store_true", help="Write an SVG of every candidate")
    _add_trace_options(fit)
    fit.set_defaults(handler=handle_fit)

    algorithms = subparsers.add_parser("algorithms", help="List fitting algorithms")
    algorithms.set_defaults(handler=handle_algorithms)

    init = subparsers.add_parser("init-config", help="Write the default configuration")
    init.add_argument("--out", "-o", default="strokefit_config.yaml", help="Where to write it")
    init.set_defaults(handler=handle_init_config)

    return parser


def main(argv=None):
    """Entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    return args.handler(args)


def handle_fit(args):
    configure_tracer(
        enabled=args.trace,
        level=args.trace_level,
        file_path=args.trace_file,
        json_output=args.trace_json,
    )
    tracer = get_tracer()

    try:
        from strokefit.pipeline import run_fitting_file

        config = load_config(args.config)
        if not args.trace and config.tracing.enabled:
            traced = config.tracing
            configure_tracer(enabled=True, level=traced.level, file_path=traced.file_path,
                             json_output=traced.json_output)
        if args.algorithm:
            config.fitting.algorithm = args.algorithm

        with tracer.span("cli_fit", module="cli", stroke=args.input):
            report, _ = run_fitting_file(args.input, out_dir=args.out, config=config,
                                         debug=args.debug)
    except Exception as e:
        tracer.event(f"Fitting failed: {e}", level="ERROR")
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    shape = "closed" if report.closed else "open"
    print("\nFitting completed successfully.")
    print(f"  Algorithm: {report.algorithm}")
    print(f"  Points: {report.point_count} ({shape}), corners: {len(report.corner_indices)}")
    for kind, count in report.counts.items():
        print(f"  {kind} candidates: {count}")
    print(f"\nReport saved to: {args.out}/primitives.json")
    return 0


def handle_algorithms(args):
    from strokefit.fitting.primitive_fitter import available_algorithms

    for name, description in available_algorithms().items():
        print(f"{name}: {description}")
    return 0


def handle_init_config(args):
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
