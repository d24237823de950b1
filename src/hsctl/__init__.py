"""hsctl - command-line interface for the homeserver harness."""

__version__ = "0.4.0"
