"""Local-validator test harness for the Access Protocol program."""

__version__ = "0.1.0"
