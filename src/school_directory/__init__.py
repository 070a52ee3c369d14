"""School Directory - register and browse schools."""

__version__ = "0.1.0"
