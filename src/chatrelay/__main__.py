"""Allow ``python -m chatrelay``."""

from .cli import main

main()
