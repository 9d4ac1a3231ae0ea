"""Allow ``python -m devstrap``."""

from devstrap.main import cli

cli()
