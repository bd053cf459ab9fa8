"""
output/writer.py -- Persists rendered reports and hands the overview to the mailer.

Every artifact is rendered and written independently: a failure is logged and the
remaining artifacts are still attempted. Mail goes out after the files, and
a mail failure never touches files already on disk.
"""

import logging
import re
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Optional, Protocol

from core.config import DEFAULT_MAIL_SUBJECT
from core.errors import MailDeliveryError
from core.formatter import render_host, render_overview
from core.models import StatusRecord

logger = logging.getLogger("defenderreport.writer")

OVERVIEW_NAME = "Overview"
FILENAME_TIMESTAMP = "%Y-%m-%d-%H-%M-%S"

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


class Mailer(Protocol):
    def send(self, subject: str, html_body: str) -> None: ...


def report_filename(name: str, timestamp: datetime) -> str:
    """DefenderStatus-<name>-<yyyy-MM-dd-HH-mm-ss>.html, safe on any filesystem."""
    safe = _UNSAFE_RE.sub("_", name).strip("._") or "host"
    return f"DefenderStatus-{safe}-{timestamp.strftime(FILENAME_TIMESTAMP)}.html"


@dataclass
class WriteSummary:
    written: list[Path] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    mailed: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed


class ReportWriter:
    def __init__(
        self, output_dir: str | Path, mailer: Optional[Mailer] = None, subject: str = DEFAULT_MAIL_SUBJECT
    ) -> None:
        self.output_dir = Path(output_dir)
        self.mailer = mailer
        self.subject = subject

    def write(self, name: str, document: str, timestamp: datetime) -> Path:
        """Write one document. Creates the output directory if needed. Raises OSError."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / report_filename(name, timestamp)
        path.write_text(document, encoding="utf-8")
        logger.info("Wrote %s", path)
        return path

    def _write_one(
        self, summary: WriteSummary, name: str, render: Callable[[], str], timestamp: datetime
    ) -> Optional[str]:
        """Render and write one artifact. Returns the document, or None if either step failed."""
        try:
            document = render()
        except Exception as e:
            logger.error("Could not render report for %s: %s", name, e)
            summary.failed.append(name)
            return None
        try:
            summary.written.append(self.write(name, document, timestamp))
        except OSError as e:
            logger.error("Could not write report for %s: %s", name, e)
            summary.failed.append(name)
        return document

    def publish(self, records: list[StatusRecord], generated_at: Optional[datetime] = None) -> WriteSummary:
        """Write one report per record plus the overview, then mail the overview if configured.

        A host listed more than once gets a numbered file per occurrence
        (srv1, srv1-2, ...) so no report overwrites another.
        """
        generated_at = generated_at or datetime.now().astimezone()
        summary = WriteSummary()
        seen: Counter[str] = Counter()

        for record in records:
            seen[record.host] += 1
            name = record.host if seen[record.host] == 1 else f"{record.host}-{seen[record.host]}"
            self._write_one(summary, name, partial(render_host, record, generated_at), generated_at)

        overview = self._write_one(summary, OVERVIEW_NAME, partial(render_overview, records, generated_at), generated_at)

        if self.mailer is not None and overview is not None:
            try:
                self.mailer.send(self.subject, overview)
                summary.mailed = True
            except MailDeliveryError as e:
                logger.error("Email delivery failed: %s", e)

        return summary
