"""CLI entrypoint for serving and inspecting waypost applications."""

from __future__ import annotations

import logging

from waypost.commands import hooks, request, routes, serve
from waypost.commands.parser import build_parser
from waypost.logging_utils import configure_logging

logger = logging.getLogger(__name__)

COMMANDS = {
    "serve": serve.run,
    "routes": routes.run,
    "hooks": hooks.run,
    "request": request.run,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        return 1
    try:
        return command(args)
    except (ValueError, ImportError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
