"""Display formatting for hsctl using Rich library."""

from rich.console import Console
from rich.table import Table
from rich.text import Text

from hs_harness.readiness.probe import ProbeOutcome, ProbeResult

PROBE_COLORS = {
    ProbeOutcome.READY: "green",
    ProbeOutcome.NOT_READY: "yellow",
    ProbeOutcome.TRANSPORT_ERROR: "red",
}

PROBE_SYMBOLS = {
    ProbeOutcome.READY: "●",
    ProbeOutcome.NOT_READY: "◐",
    ProbeOutcome.TRANSPORT_ERROR: "×",
}


def format_probe_result(url: str, result: ProbeResult) -> Text:
    """One-line probe summary, e.g. ``● ready (200) http://...``."""
    color = PROBE_COLORS[result.outcome]
    text = Text()
    text.append(f"{PROBE_SYMBOLS[result.outcome]} ", style=color)
    text.append(result.outcome.value.replace("_", " "), style=f"bold {color}")
    if result.status_code:
        text.append(f" ({result.status_code})")
    text.append(f" {url}", style="dim")
    return text


def build_status_table(pid: int | None, workdir: str | None, alive: bool | None, source: str) -> Table:
    """Table describing the recorded server."""
    table = Table(title="Homeserver", show_header=False, box=None, pad_edge=False)
    table.add_column("field", style="bold")
    table.add_column("value")

    if pid is None:
        table.add_row("server", Text("none recorded", style="dim"))
    else:
        state = Text("running", style="green") if alive else Text("not running", style="red")
        table.add_row("pid", str(pid))
        table.add_row("workdir", workdir or "?")
        table.add_row("state", state)
    table.add_row("handoff", Text(source, style="dim"))
    return table


def display_probe_result(url: str, result: ProbeResult, console: Console | None = None):
    (console or Console()).print(format_probe_result(url, result))


def display_status(pid: int | None, workdir: str | None, alive: bool | None, source: str,
                   console: Console | None = None):
    (console or Console()).print(build_status_table(pid, workdir, alive, source))
