import sys
from pathlib import Path
from typing import Optional

from kelp.kelp_config import ConfigError
from kelp.kelp_runtime import ScriptRunner, ExecutionResult


def read_line(prompt: str) -> Optional[str]:
    """A basic input prompt; returns None on end of input."""
    try:
        return input(prompt)
    except EOFError:
        return None


def _print_side_effects(result: ExecutionResult):
    # Print side effects (from `emit`)
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))


def _make_runner() -> ScriptRunner:
    try:
        return ScriptRunner()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)


def run_script_file(file_path: str):
    """Run a KELP script file non-interactively and exit with appropriate status."""
    runner = _make_runner()
    p = Path(file_path)
    try:
        source = p.read_text(encoding=runner.config.encoding)
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    except (OSError, UnicodeError) as e:
        print(f"Error: cannot read {file_path}: {e}", file=sys.stderr)
        raise SystemExit(1)
    result = runner.handle_script(source)
    _print_side_effects(result)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    print(runner.format_value(result.value))


def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    args = sys.argv[1:] if argv is None else argv
    if args and not args[0].startswith("-"):
        run_script_file(args[0])
        return

    print("KELP REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = _make_runner()

    while True:
        raw = read_line(">> ")
        if raw is None:
            print("\nExiting.")
            break
        line = raw.strip()
        if not line:
            continue
        if line == "exit":
            break

        result = runner.handle_script(line)
        _print_side_effects(result)
        if result.status == 'error':
            # Pretty, location-aware message
            print(result.format_error(), file=sys.stderr)
            continue

        print(runner.format_value(result.value))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
