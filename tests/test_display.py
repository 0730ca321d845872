import io

from rich.console import Console

from mtp import display


def _capture(monkeypatch) -> io.StringIO:
    buffer = io.StringIO()
    monkeypatch.setattr(display, "console", Console(file=buffer, width=120))
    return buffer

# ---------------------------------------------------------------------------
# Quiet mode
# ---------------------------------------------------------------------------

def test_quiet_flag_is_read_on_every_call(monkeypatch):
    buffer = _capture(monkeypatch)

    monkeypatch.setenv("MTP_QUIET", "1")
    display.task_completed("t-silent")
    assert buffer.getvalue() == ""

    monkeypatch.setenv("MTP_QUIET", "0")
    display.task_completed("t-loud")
    assert "t-loud" in buffer.getvalue()
    assert "t-silent" not in buffer.getvalue()

# ---------------------------------------------------------------------------
# Markup safety
# ---------------------------------------------------------------------------

def test_dynamic_text_is_not_parsed_as_markup(monkeypatch):
    buffer = _capture(monkeypatch)
    monkeypatch.setenv("MTP_QUIET", "0")

    display.task_rejected("t-1", "schema_validation", "bad field [bold]x[/bold]")

    assert "[bold]x[/bold]" in buffer.getvalue()
