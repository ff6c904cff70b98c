"""netreg - registry of blockchain network configurations."""

__version__ = "0.1.0"
