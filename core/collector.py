"""
core/collector.py -- Bounded-concurrency collection across many hosts.

Each host is one task in a ThreadPoolExecutor sized to the concurrency
limit. A task always resolves to a ProbeOutcome, so no exception crosses a
task boundary and one slow or failing host never cancels its siblings.

Output order follows completion, not input. Callers that need a stable order
should sort by host.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional, Protocol

from core.errors import EmptyResultError
from core.models import StatusRecord

logger = logging.getLogger("defenderreport.collector")

DEFAULT_CONCURRENCY = 5


class Probe(Protocol):
    def probe(self, host: str) -> Optional[StatusRecord]: ...


@dataclass
class ProbeOutcome:
    host: str
    record: Optional[StatusRecord] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _run_probe(probe: Probe, host: str, trace: bool) -> ProbeOutcome:
    if trace:
        logger.debug("Processing host: %s", host)
    try:
        return ProbeOutcome(host=host, record=probe.probe(host))
    except Exception as e:
        return ProbeOutcome(host=host, error=str(e) or type(e).__name__)


def collect_outcomes(
    hosts: list[str], probe: Probe, concurrency_limit: int = DEFAULT_CONCURRENCY, trace: bool = False
) -> list[ProbeOutcome]:
    """Probe every host with at most concurrency_limit probes in flight."""
    if concurrency_limit < 1:
        raise ValueError(f"concurrency_limit must be positive, got {concurrency_limit}")

    outcomes: list[ProbeOutcome] = []
    if not hosts:
        return outcomes

    with ThreadPoolExecutor(max_workers=concurrency_limit, thread_name_prefix="probe") as pool:
        futures = [pool.submit(_run_probe, probe, host, trace) for host in hosts]
        for future in as_completed(futures):
            outcomes.append(future.result())

    return outcomes


def collect(
    hosts: list[str], probe: Probe, concurrency_limit: int = DEFAULT_CONCURRENCY, trace: bool = False
) -> list[StatusRecord]:
    """Return a StatusRecord for every host that produced one.

    Hosts that were unreachable, failed their status query, or raised are
    dropped with a warning. An empty list is a legitimate return value;
    use require_records() to turn it into an error.
    """
    records: list[StatusRecord] = []
    for outcome in collect_outcomes(hosts, probe, concurrency_limit, trace):
        if outcome.error is not None:
            logger.warning("Probe for %s failed: %s", outcome.host, outcome.error)
        elif outcome.record is not None:
            records.append(outcome.record)

    logger.info("Collected %d of %d host(s)", len(records), len(hosts))
    return records


def require_records(records: list[StatusRecord], attempted: int) -> list[StatusRecord]:
    """Raise EmptyResultError when a completed collection produced nothing."""
    if not records:
        raise EmptyResultError(attempted)
    return records
