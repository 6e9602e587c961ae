"""Entry point for ``python -m caddyhook``."""

from caddyhook.main import main

if __name__ == "__main__":
    main()
