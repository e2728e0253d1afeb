"""Allow ``python -m bookhub``."""

from .cli import main

if __name__ == "__main__":
    main()
