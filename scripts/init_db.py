import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from classroom.logging_config import setup_logging
from classroom.migrations import upgrade_head, downgrade_base


def main():
    parser = argparse.ArgumentParser(description="Apply or roll back database migrations.")
    parser.add_argument("--downgrade", action="store_true", help="Roll back to an empty schema.")
    args = parser.parse_args()

    setup_logging()
    if args.downgrade:
        downgrade_base()
        print("Database downgraded to base.")
    else:
        upgrade_head()
        print("Database upgraded to head.")


if __name__ == "__main__":
    main()
