#!/usr/bin/env python3
"""Apply Alembic migrations (or stamp a database built by create_all)."""

from __future__ import annotations

import argparse
from pathlib import Path

from alembic.config import Config

from alembic import command

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def alembic_config() -> Config:
    return Config(str(PROJECT_ROOT / "alembic.ini"))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("revision", nargs="?", default="head")
    parser.add_argument(
        "--stamp",
        action="store_true",
        help="record the revision without running migrations",
    )
    args = parser.parse_args(argv)

    cfg = alembic_config()
    if args.stamp:
        command.stamp(cfg, args.revision)
    else:
        command.upgrade(cfg, args.revision)


if __name__ == "__main__":
    main()
