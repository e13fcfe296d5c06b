"""
CLI entry point for cookbook-lint.

Usage:
    cookbook-lint check [PATH ...]         Lint cookbooks and their docs
    cookbook-lint rules                    List every rule
    cookbook-lint watch [PATH]             Re-lint files as they change
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import ConfigError, LintConfig, load_config


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _split_refs(values):
    """Flatten repeated and comma separated rule references."""
    if not values:
        return None
    return tuple(v.strip() for value in values for v in value.split(",") if v.strip())


def _overrides(args) -> dict:
    return {
        "max_line_length": args.max_line_length,
        "min_severity": args.severity,
        "fail_on": args.fail_on,
        "enabled_rules": _split_refs(args.enable),
        "disabled_rules": _split_refs(args.disable),
        "check_docs": False if args.no_docs else None,
        "json_output": True if args.json else None,
    }


def build_config(paths, config_file=None, overrides=None) -> LintConfig:
    """
    Turn command line paths into a LintConfig.

    A single directory becomes the scan root. Anything else (files, or
    several directories) is linted as an explicit file list rooted at the
    current directory. Raises FileNotFoundError for a missing path.
    """
    paths = [Path(p) for p in paths or ["."]]
    for p in paths:
        if not p.exists():
            raise FileNotFoundError(f"No such file or directory: {p}")

    config_path = Path(config_file) if config_file else None
    if len(paths) == 1 and paths[0].is_dir():
        return load_config(paths[0], config_path, overrides)

    from .scanner import iter_files

    cfg = load_config(Path.cwd(), config_path, overrides)
    files = []
    for p in paths:
        if p.is_dir():
            files.extend(iter_files(replace(cfg, root=p, explicit_files=None)))
        else:
            files.append(p)
    return replace(cfg, explicit_files=tuple(files))


def cmd_check(args):
    """Lint the given paths."""
    from .runner import run

    try:
        cfg = build_config(args.paths, args.config, _overrides(args))
        reporter = run(cfg)
    except FileNotFoundError as e:
        print(f"cookbook-lint: {e}", file=sys.stderr)
        return 2
    except ConfigError as e:
        print(f"cookbook-lint: config error: {e}", file=sys.stderr)
        return 2

    if cfg.json_output:
        print(reporter.render_json())
    else:
        print(reporter.render_human())

    return 1 if reporter.has_issues_at(cfg.fail_on) else 0


def cmd_rules(args):
    """List the available rules."""
    from .rules import all_rules

    rules = all_rules()
    if args.json:
        print(json.dumps([
            {
                "code": r.code,
                "name": r.name,
                "severity": r.severity.value,
                "description": r.description,
            }
            for r in rules
        ], indent=2))
        return 0

    for r in rules:
        print(f"{r.code}  {r.name:<30} {r.severity.value:<8} {r.description}")
    return 0


def cmd_watch(args):
    """Watch a cookbook and re-lint files on change."""
    from .rules import select_rules
    from .watch import watch

    root = Path(args.path)
    if not root.is_dir():
        print(f"cookbook-lint: not a directory: {root}", file=sys.stderr)
        return 2
    try:
        cfg = load_config(root, Path(args.config) if args.config else None)
        # Unknown rule references must fail before the observer starts
        select_rules(cfg)
    except ConfigError as e:
        print(f"cookbook-lint: config error: {e}", file=sys.stderr)
        return 2
    return watch(cfg, interval=args.interval)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="cookbook-lint",
        description="Style checker for Chef cookbooks and their documentation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    cookbook-lint check
    cookbook-lint check cookbooks/nginx --fail-on warning
    cookbook-lint check recipes/default.rb --disable I003 --json
    cookbook-lint rules
"""
    )
    parser.add_argument('--version', action='version', version=f'cookbook-lint {__version__}')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-v', '--verbose', action='count', default=0,
                        help='Log progress (-vv for debug output)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # check
    check_p = subparsers.add_parser('check', parents=[common], help='Lint cookbook files')
    check_p.add_argument('paths', nargs='*', help='Files or directories (default: .)')
    check_p.add_argument('--config', metavar='FILE', help='YAML config file')
    check_p.add_argument('--json', action='store_true', help='Output as JSON')
    check_p.add_argument('--severity', metavar='LEVEL',
                         help='Only report issues at or above LEVEL')
    check_p.add_argument('--fail-on', metavar='LEVEL',
                         help='Exit 1 when issues at or above LEVEL are found (default: error)')
    check_p.add_argument('--disable', metavar='RULE', action='append',
                         help='Disable a rule by code or name (repeatable, comma separated)')
    check_p.add_argument('--enable', metavar='RULE', action='append',
                         help='Run only these rules (repeatable, comma separated)')
    check_p.add_argument('--max-line-length', type=int, metavar='N')
    check_p.add_argument('--no-docs', action='store_true', help='Skip Markdown files')
    check_p.set_defaults(func=cmd_check)

    # rules
    rules_p = subparsers.add_parser('rules', parents=[common], help='List rules')
    rules_p.add_argument('--json', action='store_true', help='Output as JSON')
    rules_p.set_defaults(func=cmd_rules)

    # watch
    watch_p = subparsers.add_parser('watch', parents=[common], help='Re-lint files on change')
    watch_p.add_argument('path', nargs='?', default='.', help='Cookbook directory (default: .)')
    watch_p.add_argument('--config', metavar='FILE', help='YAML config file')
    watch_p.add_argument('--interval', type=float, default=0.5,
                         help='Polling interval in seconds (default: 0.5)')
    watch_p.set_defaults(func=cmd_watch)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
