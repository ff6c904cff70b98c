"""Allow ``python -m netreg``."""

from netreg.main import run

run()
