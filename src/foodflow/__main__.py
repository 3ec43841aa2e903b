"""Allow ``python -m foodflow``."""

from foodflow.cli.main import main

main()
