"""
formatter.py — Renders StatusRecords to HTML reports or a terminal summary.

Rendering is pure: no network or filesystem access. The generation timestamp
is injectable, so the same records rendered with the same timestamp always
produce byte-identical HTML.
"""

import html
import os
import sys
from datetime import datetime
from typing import Optional

from .models import (
    CRITICAL,
    NEVER_SCANNED,
    NO_THREAT_DATA,
    WARNING,
    StatusRecord,
    severity,
)

MODE_TABLE = "multi-host-table"
MODE_HOST = "single-host-keyvalue"

RED = "red"
ORANGE = "orange"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

W = 68  # terminal output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and checks sys.stdout.isatty().
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


SEVERITY_COLORS = {
    CRITICAL: "\033[91m",  # red
    WARNING: "\033[93m",  # yellow
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _s_color(tier: str) -> str:
    return SEVERITY_COLORS.get(tier, "") if _color_active() else ""


# ---------------------------------------------------------------------------
# Field presentation
# ---------------------------------------------------------------------------


def format_scan_time(record: StatusRecord) -> str:
    if record.last_full_scan is None:
        return NEVER_SCANNED
    scanned = record.last_full_scan
    if scanned.tzinfo is not None:
        scanned = scanned.astimezone()
    return scanned.strftime(TIMESTAMP_FORMAT)


def format_threats(record: StatusRecord) -> str:
    if record.threats_found is None:
        return NO_THREAT_DATA
    return str(record.threats_found)


def row_class(record: StatusRecord) -> Optional[str]:
    """Overview row highlight. Threats are checked before definition age."""
    if record.has_threats:
        return RED
    if record.definitions_outdated:
        return ORANGE
    return None


def host_rows(record: StatusRecord, now: Optional[datetime] = None) -> list[tuple[str, str, Optional[str]]]:
    """(label, value, css_class) rows for the single-host report, in display order.

    Each class is derived from the typed field and its threshold, not from
    the rendered value text.
    """
    return [
        ("Defender Enabled", str(record.agent_enabled), None if record.agent_enabled else RED),
        (
            "Real-Time Protection",
            str(record.realtime_protection_enabled),
            None if record.realtime_protection_enabled else RED,
        ),
        (
            "Antivirus Definitions Age",
            f"{record.definition_age_days} day(s)",
            ORANGE if record.definitions_outdated else None,
        ),
        ("Last Full Scan", format_scan_time(record), ORANGE if record.scan_overdue(now) else None),
        ("Threats Found", format_threats(record), RED if record.has_threats else None),
    ]


# ---------------------------------------------------------------------------
# HTML export
# ---------------------------------------------------------------------------

_HTML_STYLE = """
    body { font-family: Arial, sans-serif; margin: 32px; background: #f9fafb; color: #111827; }
    h1 { font-size: 1.5rem; margin-bottom: 4px; }
    p.subtitle { color: #6b7280; margin-top: 0; margin-bottom: 24px; font-size: 0.9rem; }
    table { border-collapse: collapse; width: 100%; background: #ffffff; }
    th { background: #1f2937; color: #f9fafb; text-align: left; padding: 10px 12px; font-size: 0.85rem; }
    td { padding: 9px 12px; font-size: 0.85rem; border-bottom: 1px solid #e5e7eb; vertical-align: middle; }
    tr:nth-child(even) td { background: #f3f4f6; }
    tr.red td { background: #fee2e2; color: #991b1b; font-weight: bold; }
    tr.orange td { background: #ffedd5; color: #9a3412; }
"""


def _tr(cells: list[str], css_class: Optional[str], tag: str = "td") -> str:
    attr = f' class="{css_class}"' if css_class else ""
    inner = "".join(f"<{tag}>{html.escape(c)}</{tag}>" for c in cells)
    return f"    <tr{attr}>{inner}</tr>"


def _document(title: str, subtitle: str, header: list[str], rows: list[str]) -> str:
    head = "".join(f"<th>{html.escape(h)}</th>" for h in header)
    body = "\n".join(rows)
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"  <title>{html.escape(title)}</title>\n"
        f"  <style>{_HTML_STYLE}  </style>\n"
        "</head>\n"
        "<body>\n"
        f"  <h1>{html.escape(title)}</h1>\n"
        f'  <p class="subtitle">{subtitle}</p>\n'
        "  <table>\n"
        "    <thead>\n"
        f"      <tr>{head}</tr>\n"
        "    </thead>\n"
        "    <tbody>\n"
        f"{body}\n"
        "    </tbody>\n"
        "  </table>\n"
        "</body>\n"
        "</html>\n"
    )


def render_overview(records: list[StatusRecord], generated_at: Optional[datetime] = None) -> str:
    """Render all records as one table, one row per host.

    Suitable for saving as .html or sending as an email body.
    No external CSS or JS dependencies -- all styles are inline.
    """
    generated_at = generated_at or datetime.now().astimezone()
    rows = [
        _tr(
            [
                r.host,
                str(r.agent_enabled),
                str(r.realtime_protection_enabled),
                str(r.definition_age_days),
                format_scan_time(r),
                format_threats(r),
            ],
            row_class(r),
        )
        for r in records
    ]
    subtitle = f"Generated {generated_at.strftime(TIMESTAMP_FORMAT)} &nbsp;&bull;&nbsp; {len(records)} host(s)"
    header = [
        "Host",
        "Defender Enabled",
        "Real-Time Protection",
        "Definitions Age (Days)",
        "Last Full Scan",
        "Threats Found",
    ]
    return _document("Defender Status Overview", subtitle, header, rows)


def render_host(record: StatusRecord, generated_at: Optional[datetime] = None) -> str:
    """Render one record as a key/value table."""
    generated_at = generated_at or datetime.now().astimezone()
    rows = [_tr([label, value], css) for label, value, css in host_rows(record, now=generated_at)]
    subtitle = f"Generated {generated_at.strftime(TIMESTAMP_FORMAT)}"
    return _document(f"Defender Status Report: {record.host}", subtitle, ["Setting", "Value"], rows)


def render(records: list[StatusRecord], mode: str = MODE_TABLE, generated_at: Optional[datetime] = None) -> str:
    if mode == MODE_TABLE:
        return render_overview(records, generated_at)
    if mode == MODE_HOST:
        if len(records) != 1:
            raise ValueError(f"{MODE_HOST} renders exactly one record, got {len(records)}")
        return render_host(records[0], generated_at)
    raise ValueError(f"Unknown render mode: {mode}")


# ---------------------------------------------------------------------------
# Terminal summary
# ---------------------------------------------------------------------------


def print_summary(records: list[StatusRecord], now: Optional[datetime] = None) -> None:
    """Print one line per host, sorted by host, colored by severity."""
    bold = _bold()
    reset = _reset()

    print(f"\n{bold}{'═' * W}{reset}")
    print(f"  {bold}DEFENDER STATUS — {len(records)} host(s){reset}")
    print(f"{bold}{'═' * W}{reset}")
    print(f"  {'HOST':<28} {'AV':<4} {'RTP':<4} {'AGE':>4}  {'THREATS':<8} {'SEVERITY'}")
    print(f"  {'─' * (W - 2)}")

    for r in sorted(records, key=lambda rec: rec.host.lower()):
        tier = severity(r, now)
        color = _s_color(tier)
        av = "on" if r.agent_enabled else "OFF"
        rtp = "on" if r.realtime_protection_enabled else "OFF"
        print(
            f"  {color}{r.host[:28]:<28} {av:<4} {rtp:<4} {r.definition_age_days:>4}  "
            f"{format_threats(r):<8} {tier}{reset}"
        )

    print(f"\n{'═' * W}\n")
