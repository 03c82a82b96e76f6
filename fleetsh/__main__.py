"""Entry point for ``python -m fleetsh``."""

from fleetsh.cli import main

if __name__ == "__main__":
    main()
