"""Allow running readshelf with ``python -m readshelf``."""

from readshelf.cli import main

if __name__ == "__main__":
    main()
