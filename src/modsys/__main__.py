"""CLI entry point: run `modsys PACKAGE_DIR ID` or `python -m modsys PACKAGE_DIR ID`."""

import sys
from pathlib import Path


def _configure_logging(verbose: bool) -> None:
    import logging
    import os
    from .utils.config import LOG_FORMAT, LOG_LEVEL_ENV_VAR

    level = os.environ.get(LOG_LEVEL_ENV_VAR, "DEBUG" if verbose else "WARNING").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _format_exports(exports) -> str:
    import json
    try:
        return json.dumps(exports, indent=2, sort_keys=True)
    except (TypeError, ValueError):
        return repr(exports)


def main() -> int:
    import argparse
    import asyncio
    from .module_system import Package, ResolutionContext
    from .shared.errors import ModuleSystemError

    parser = argparse.ArgumentParser(prog="modsys", description="Import a module from a package and print its exports.")
    parser.add_argument("package", type=Path, help="Package directory (containing package.json)")
    parser.add_argument("id", nargs="?", default="", help="Module id, e.g. ./lib/a or dep/x (default: the package main)")
    parser.add_argument("--browser", action="store_true", help="Apply descriptor browser overlays")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log load and link steps")
    args = parser.parse_args()
    _configure_logging(args.verbose)

    location = args.package.resolve()
    if not location.is_dir():
        sys.stderr.write(f"modsys: error: not a directory: {location}\n")
        return 1

    async def run():
        context = ResolutionContext(browser=args.browser)
        package = await Package.load_package(location, context=context)
        # An empty id names the package main
        return await package.import_module(args.id or "./")

    try:
        exports = asyncio.run(run())
    except ModuleSystemError as e:
        sys.stderr.write(f"modsys: error: {e}\n")
        return 1

    print(_format_exports(exports))
    return 0


if __name__ == "__main__":
    sys.exit(main())
