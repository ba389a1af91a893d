"""List registered hooks."""

from __future__ import annotations

import argparse

from waypost.commands.common import load_app


def run(args: argparse.Namespace) -> int:
    application = load_app(args)
    registered = application.hooks.hooks(args.name)
    if not registered:
        print("No hooks registered")
        return 0
    for name, records in sorted(registered.items()):
        print(name)
        for record in records:
            print(f"  {record.priority:>5}  {record.kind.value:<6}  args={record.accepted_args}  {record.callback_id}")
    return 0
