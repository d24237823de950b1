"""hs_harness - ephemeral Matrix homeserver for CI workflows."""

__version__ = "0.4.0"
