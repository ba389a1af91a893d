"""Serve command."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from waypost.commands.common import load_app, load_config

logger = logging.getLogger(__name__)


def run(args: argparse.Namespace) -> int:
    config = load_config(args)
    host = args.host or config.server.host
    port = args.port or config.server.port

    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - dependency/runtime
        raise RuntimeError("Missing server dependencies. Install with: pip install 'waypost[serve]'") from exc

    logger.info("Starting server on http://%s:%s (app=%s)", host, port, args.app or "<config>")
    if args.reload:
        # the reload worker rebuilds the app from these in a fresh process
        os.environ["WAYPOST_PROJECT_PATH"] = str(Path(args.project_path).resolve())
        if args.app:
            os.environ["WAYPOST_APP"] = args.app
        for name, value in (
            ("WAYPOST_SYSTEM_CONFIG", args.system_config),
            ("WAYPOST_RUNTIME_OVERRIDE", args.runtime_override),
            ("WAYPOST_LOG_FILE", args.log_file),
        ):
            if value:
                os.environ[name] = str(Path(value).resolve())
        uvicorn.run(
            "waypost.server:create_app_from_env",
            host=host,
            port=port,
            reload=True,
            factory=True,
            log_level=args.log_level.lower(),
        )
    else:
        from waypost.server import create_app

        app = create_app(load_app(args, config))
        uvicorn.run(app, host=host, port=port, reload=False, log_level=args.log_level.lower())
    return 0
