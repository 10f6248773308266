"""Entry point for `python -m ppgspec`."""

from ppgspec.cli import main

if __name__ == "__main__":
    main()
