#!/usr/bin/env python3
"""vite_assets: inspect what a page would enqueue for a Vite entry point.

Usage:
    vite_assets plan --code-dir <dir> --dist-url <url> --entry <key>
                     [--dev] [--react] [--no-preload] [--base-url <path>]
    vite_assets probe --code-dir <dir>

Subcommands:
    plan    Run the full enqueue against an in-memory registry and print the
            registered scripts, styles and head markup as JSON.
    probe   Print the dev-server liveness state for <dir> as JSON.

Settings not given on the command line fall back to VITE_ASSETS_* env vars.

Exit codes:
    0   success
    1   manifest / resolution error
    2   invalid usage
"""
import argparse
import json
import sys
from pathlib import Path

# Ensure project root is on sys.path so app/*, resolvers/* etc. are importable
# when the script is invoked from any working directory.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError  # noqa: E402

from app.config import ScriptSetConfig  # noqa: E402
from app.errors import AssetResolutionError  # noqa: E402
from app.script_set import ScriptSet  # noqa: E402
from app.utils.logging import configure_logging  # noqa: E402
from emitters.registry import InMemoryRegistry  # noqa: E402
from liveness.probe import LivenessProbe, marker_path  # noqa: E402

_USAGE = """\
Usage:
  vite_assets plan --code-dir <dir> --dist-url <url> --entry <key> [--dev] [--react] [--no-preload] [--base-url <path>]
  vite_assets probe --code-dir <dir>
"""


# ---------------------------------------------------------------------------
# plan
# ---------------------------------------------------------------------------

def cmd_plan(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="vite_assets plan", add_help=True)
    parser.add_argument("--code-dir", dest="code_dir", metavar="DIR",
                        help="Directory holding dist/.vite/manifest.json")
    parser.add_argument("--dist-url", dest="dist_url", metavar="URL",
                        help="URL the dist/ files are served at")
    parser.add_argument("--entry", dest="entry_point", metavar="KEY",
                        help="Manifest key of the entry point")
    parser.add_argument("--base-url", dest="base_url", metavar="PATH",
                        help="Dev-server base path (default /)")
    parser.add_argument("--dev", dest="dev_mode", action="store_true", default=None,
                        help="Use the dev server when it is running")
    parser.add_argument("--react", action="store_true", default=None,
                        help="Inject the React refresh preamble in dev mode")
    parser.add_argument("--no-preload", dest="preload", action="store_false", default=None,
                        help="Disable modulepreload hints")

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else 2

    try:
        config = ScriptSetConfig.from_env(**vars(args))
    except ValidationError as exc:
        print(f"ERROR: incomplete configuration: {exc}", file=sys.stderr)
        return 2

    registry = InMemoryRegistry()
    heads: list = []
    try:
        scripts = ScriptSet.from_config(config, registry)
        scripts.enqueue(head_hook=heads.append)
    except AssetResolutionError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    document = {
        "mode": "dev" if scripts.use_dev_server else "build",
        "liveness": scripts.liveness.model_dump(mode="json"),
        "scripts": [s.model_dump() for s in registry.scripts.values()],
        "styles": [s.model_dump() for s in registry.styles.values()],
        "head": heads[0]() if heads else "",
    }
    print(json.dumps(document, indent=2))
    return 0


# ---------------------------------------------------------------------------
# probe
# ---------------------------------------------------------------------------

def cmd_probe(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="vite_assets probe", add_help=True)
    parser.add_argument("--code-dir", dest="code_dir", required=True, metavar="DIR",
                        help="Directory holding the liveness marker")

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return int(exc.code) if exc.code is not None else 2

    state = LivenessProbe().probe(marker_path(args.code_dir))
    print(json.dumps(state.model_dump(mode="json"), indent=2))
    return 0


# ---------------------------------------------------------------------------
# entry point
# ---------------------------------------------------------------------------

def main() -> None:
    if len(sys.argv) < 2:
        print(_USAGE, file=sys.stderr)
        sys.exit(2)

    configure_logging()
    subcmd, rest = sys.argv[1], sys.argv[2:]

    if subcmd == "plan":
        sys.exit(cmd_plan(rest))
    elif subcmd == "probe":
        sys.exit(cmd_probe(rest))
    else:
        print(f"Unknown subcommand: {subcmd!r}\n{_USAGE}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
