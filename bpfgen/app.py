"""Command line entry point: render a bpftrace script template against a target binary."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config_manager import ConfigManager
from .controllers.target import Target
from .errors import GeneratorError
from .services import parser, renderer, templates

LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bpfgen",
        description="Generate a bpftrace script from a template using static facts about a target binary",
    )
    p.add_argument("script", nargs="?", help="Template file, or the name of a built-in template")
    p.add_argument("target", nargs="?", help="Path to the executable to trace")
    p.add_argument(
        "assignments",
        nargs="*",
        metavar="key=value",
        help="Template arguments; repeat a key to pass several values. symbol=<name> resolves addresses up front.",
    )
    p.add_argument("--config", type=Path, default=None, help="Settings file (JSON)")
    p.add_argument(
        "--strict-abi",
        action="store_true",
        default=None,
        help="Fail instead of falling back to the stack calling convention when the ABI cannot be classified",
    )
    p.add_argument(
        "--tail-calls",
        action="store_true",
        default=None,
        help="Treat direct jumps out of a function as additional return sites",
    )
    p.add_argument("--list-templates", action="store_true", help="List built-in templates and exit")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr")
    return p


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def generate(
    script: str,
    target_exe: str,
    assignments: list[str],
    *,
    strict_abi: bool = False,
    tail_calls: bool = False,
    sample_limit: int | None = None,
    template_dirs: list[str] | None = None,
) -> str:
    values = parser.parse_assignments(assignments)
    template_text = templates.load_template(script, search_dirs=template_dirs or ())
    options = {"sample_limit": sample_limit} if sample_limit is not None else {}
    target = Target(
        target_exe,
        parser.accessor(values),
        strict_abi=strict_abi,
        tail_calls=tail_calls,
        **options,
    )
    return renderer.render(template_text, target.context(), name=script)


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    configure_logging(args.verbose)

    if args.list_templates:
        for name in templates.list_builtin():
            print(name)
        return 0
    if not args.script or not args.target:
        p.error("usage: bpfgen <template file> <target file> [key=value]...")

    config = ConfigManager(args.config).load()
    strict_abi = config.strict_abi if args.strict_abi is None else args.strict_abi
    tail_calls = config.tail_calls if args.tail_calls is None else args.tail_calls

    try:
        output = generate(
            args.script,
            args.target,
            args.assignments,
            strict_abi=strict_abi,
            tail_calls=tail_calls,
            sample_limit=config.classify_sample_limit,
            template_dirs=config.template_dirs,
        )
    except GeneratorError as exc:
        LOG.debug("generation failed", exc_info=True)
        print(f"bpfgen: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(output)
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
