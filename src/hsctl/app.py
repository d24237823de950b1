"""Main Typer app for hsctl CLI.

Usage:
    hsctl start --port 8008       # main step of the workflow
    hsctl stop                    # post step, always succeeds
    hsctl status
    hsctl probe http://localhost:8008/_matrix/client/versions
"""

import os

import typer

from hsctl.commands.inspect import probe_cmd, status_cmd
from hsctl.commands.lifecycle import start_cmd, stop_cmd

# Disable typer's rich integration to avoid compatibility issues
os.environ["_TYPER_STANDARD_TRACEBACK"] = "1"

app = typer.Typer(pretty_exceptions_enable=False, rich_markup_mode=None, no_args_is_help=True)
app.command("start")(start_cmd)
app.command("stop")(stop_cmd)
app.command("probe")(probe_cmd)
app.command("status")(status_cmd)


def main():
    """Entry point for hsctl CLI."""
    app()


if __name__ == "__main__":
    main()
