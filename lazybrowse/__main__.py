"""Module entrypoint for ``python -m lazybrowse``."""

from .cli import main


if __name__ == "__main__":
    main()
