"""
Entry point for ``python -m fleetguard_cli <command>``.
"""

import sys

from fleetguard_cli import check_database, migrate, reset, seed, setup_database

COMMANDS = {
    "migrate": migrate.main,
    "seed": seed.main,
    "reset": reset.main,
    "setup-database": setup_database.main,
    "check-database": check_database.main,
}


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in COMMANDS:
        print(f"usage: python -m fleetguard_cli {{{','.join(COMMANDS)}}} [--config PATH]", file=sys.stderr)
        return 2
    return COMMANDS[argv[0]](argv[1:])


if __name__ == "__main__":
    sys.exit(main())
