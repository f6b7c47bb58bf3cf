"""Entry point for python -m hn_slackbot execution."""

import sys

from .main import main

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted by user")
        sys.exit(130)
