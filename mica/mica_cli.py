import argparse
import sys
from pathlib import Path

from mica.mica_runtime import ScriptRunner
from mica.mica_config import ConfigError, load_config
from mica.mica_datatypes import EMPTY, ErrorValue


def _print_effects(result):
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))
        elif effect.get('topics') == ['stderr']:
            print(effect.get('message', ''), file=sys.stderr)


def _show(runner: ScriptRunner, result):
    _print_effects(result)
    value = result.value
    # Runtime errors were already reported as stderr effects.
    if result.status == 'success' and value is not None and value is not EMPTY and not isinstance(value, ErrorValue):
        print(runner.format_value(value))


def run_script_file(runner: ScriptRunner, file_path: str) -> int:
    """Run a Mica script file non-interactively and return the exit status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    result = runner.handle_script(source)
    # Error results already carry their message as the last stderr effect.
    _show(runner, result)
    return 0 if result.status == 'success' else 1


def repl(runner: ScriptRunner):
    print("Mica REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")
    while True:
        try:
            line = input(">> ").strip()
        except EOFError:
            print("\nExiting.")
            break
        if not line:
            continue
        if line == "exit":
            break
        _show(runner, runner.handle_script(line))


def main(argv=None) -> int:
    """Run a script file when provided, otherwise start the interactive REPL."""
    ap = argparse.ArgumentParser(prog="mica", description="Run Mica scripts or start a REPL.")
    ap.add_argument("file", nargs="?", help="script to run")
    ap.add_argument("--config", help="YAML configuration file (default: $MICA_CONFIG)")
    ap.add_argument("--print-config", action="store_true", help="print the effective configuration and exit")
    args = ap.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.print_config:
        print(config.to_yaml(), end="")
        return 0

    runner = ScriptRunner(config)
    if args.file:
        return run_script_file(runner, args.file)
    try:
        repl(runner)
    except KeyboardInterrupt:
        print("\nExiting.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
