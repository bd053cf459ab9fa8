from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Highlight thresholds. Definitions older than this many days are outdated.
DEFINITION_AGE_LIMIT_DAYS = 5
# A full scan older than this many days (or none at all) is overdue.
FULL_SCAN_LIMIT_DAYS = 14

# Presentation fallbacks for absent fields.
NEVER_SCANNED = "Never"
NO_THREAT_DATA = "None"

CRITICAL = "critical"
WARNING = "warning"
NORMAL = "normal"


@dataclass(frozen=True)
class StatusRecord:
    host: str
    agent_enabled: bool
    realtime_protection_enabled: bool
    definition_age_days: int
    last_full_scan: Optional[datetime] = None
    threats_found: Optional[int] = None  # None = no threat data, distinct from 0

    def __post_init__(self) -> None:
        if self.definition_age_days < 0:
            raise ValueError(f"definition_age_days must be >= 0, got {self.definition_age_days}")

    @property
    def has_threats(self) -> bool:
        return self.threats_found is not None and self.threats_found > 0

    @property
    def definitions_outdated(self) -> bool:
        return self.definition_age_days > DEFINITION_AGE_LIMIT_DAYS

    def scan_overdue(self, now: Optional[datetime] = None) -> bool:
        """True when no full scan is recorded or the last one is too old.

        Naive timestamps are read as local time.
        """
        if self.last_full_scan is None:
            return True
        now = (now or datetime.now()).astimezone()
        return now - self.last_full_scan.astimezone() > timedelta(days=FULL_SCAN_LIMIT_DAYS)


def severity(record: StatusRecord, now: Optional[datetime] = None) -> str:
    """Derive the triage tier for a record. Computed at render time, never stored."""
    if not record.agent_enabled or not record.realtime_protection_enabled or record.has_threats:
        return CRITICAL
    if record.definitions_outdated or record.scan_overdue(now):
        return WARNING
    return NORMAL
