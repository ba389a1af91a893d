"""Dispatch one request in-process."""

from __future__ import annotations

import argparse

from waypost.commands.common import load_app, parse_header_args


def run(args: argparse.Namespace) -> int:
    application = load_app(args)
    response = application.handle(
        args.path,
        args.method,
        headers=parse_header_args(args.header),
        body=args.data.encode("utf-8"),
        client_host="127.0.0.1",
    )
    if args.include:
        print(f"HTTP {response.status}")
        print(f"content-type: {response.media_type}")
        for name, value in response.headers.items():
            print(f"{name}: {value}")
        print()
    print(response.body)
    return 0 if response.status < 400 else 1
