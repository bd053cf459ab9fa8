"""
probe.py -- HostProbe: reachability check plus status fetch for one host.

probe() never raises. Every failure path logs a warning naming the host and
returns None, so one bad host cannot take down a collection run.
"""

import logging
from typing import Optional

from core.models import StatusRecord
from core.remote import RawStatus, StatusSource

logger = logging.getLogger("defenderreport.probe")

DEFAULT_ATTEMPTS = 2
DEFAULT_TIMEOUT = 2


class HostProbe:
    def __init__(self, source: StatusSource, attempts: int = DEFAULT_ATTEMPTS, timeout: int = DEFAULT_TIMEOUT) -> None:
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        self.source = source
        self.attempts = attempts
        self.timeout = timeout

    def reachable(self, host: str) -> bool:
        """True if any of the configured reachability attempts succeeds."""
        for _ in range(self.attempts):
            try:
                if self.source.is_reachable(host, self.timeout):
                    return True
            except Exception as e:
                logger.debug("Reachability check errored for %s: %s", host, e)
        return False

    def threat_count(self, host: str) -> Optional[int]:
        """Best-effort threat count. None means no threat data, not zero threats."""
        try:
            threats = self.source.get_threats(host)
        except Exception as e:
            logger.info("Threat list unavailable for %s: %s", host, e)
            return None
        return len(threats) if threats else None

    def probe(self, host: str) -> Optional[StatusRecord]:
        if not self.reachable(host):
            logger.warning("%s is not reachable", host)
            return None

        try:
            status: RawStatus = self.source.get_status(host)
            threats = self.threat_count(host)
            return StatusRecord(
                host=host,
                agent_enabled=status.antivirus_enabled,
                realtime_protection_enabled=status.realtime_protection_enabled,
                definition_age_days=status.signature_age_days,
                last_full_scan=status.full_scan_end_time,
                threats_found=threats,
            )
        except Exception as e:
            logger.warning("Failed to get Defender status from %s: %s", host, e)
            return None
