"""
remote.py -- Status-query collaborator: everything that talks to a host.

Reachability is a single ICMP ping per attempt. Status and threat data come
from the Defender PowerShell cmdlets, run through Invoke-Command for remote
hosts and directly for the local machine. Credentials are whatever the
PowerShell session already holds; this module never handles them.
"""

import json
import platform
import re
import socket
import subprocess
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import StatusQueryError

IS_WINDOWS = platform.system().lower() == "windows"

_STATUS_SCRIPT = (
    "Get-MpComputerStatus | Select-Object "
    "AntivirusEnabled,RealTimeProtectionEnabled,AntivirusSignatureAge,FullScanEndTime"
)
_THREAT_SCRIPT = "@(Get-MpThreat -ErrorAction Stop) | Select-Object ThreatID,ThreatName"

# Windows PowerShell 5 serializes DateTime as "/Date(1700000000000)/".
_PS_DATE_RE = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")

_LOCAL_NAMES = {"localhost", ".", "127.0.0.1", "::1"}


class RawStatus(BaseModel):
    """Shape of `Get-MpComputerStatus | ConvertTo-Json` that the report consumes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    antivirus_enabled: bool = Field(alias="AntivirusEnabled")
    realtime_protection_enabled: bool = Field(alias="RealTimeProtectionEnabled")
    signature_age_days: int = Field(alias="AntivirusSignatureAge", ge=0)
    full_scan_end_time: Optional[datetime] = Field(default=None, alias="FullScanEndTime")

    @field_validator("full_scan_end_time", mode="before")
    @classmethod
    def parse_powershell_date(cls, value: Any) -> Any:
        # Remoting can wrap the date as {"value": "/Date(..)/", "DateTime": "..."}
        if isinstance(value, dict):
            value = value.get("value") or value.get("DateTime")
        if isinstance(value, str):
            if not value.strip():
                return None
            match = _PS_DATE_RE.match(value.strip())
            if match:
                return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
        return value


class StatusSource(Protocol):
    """Per-host status capability consumed by HostProbe."""

    def is_reachable(self, host: str, timeout: int) -> bool: ...

    def get_status(self, host: str) -> RawStatus: ...

    def get_threats(self, host: str) -> list[dict[str, Any]]: ...


def run_cmd(cmd: list[str], timeout: int = 30) -> tuple[int, str, str]:
    """Run a command, return (returncode, stdout, stderr). Never raises."""
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return proc.returncode, proc.stdout.strip(), proc.stderr.strip()
    except FileNotFoundError:
        return 127, "", f"command not found: {cmd[0]}"
    except subprocess.TimeoutExpired:
        return 124, "", f"timeout ({timeout}s) running: {cmd[0]}"
    except OSError as e:
        return 1, "", str(e)


def is_local(host: str) -> bool:
    name = host.lower()
    if name in _LOCAL_NAMES:
        return True
    return name.rstrip(".") == socket.gethostname().lower()


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class PowerShellStatusSource:
    """StatusSource backed by the Defender cmdlets over PowerShell remoting."""

    def __init__(self, executable: Optional[str] = None, timeout: int = 60) -> None:
        self.executable = executable or ("powershell" if IS_WINDOWS else "pwsh")
        self.timeout = timeout

    # -- reachability ---------------------------------------------------------

    def is_reachable(self, host: str, timeout: int) -> bool:
        if IS_WINDOWS:
            cmd = ["ping", "-n", "1", "-w", str(timeout * 1000), host]
        else:
            cmd = ["ping", "-c", "1", "-W", str(timeout), host]
        rc, _, _ = run_cmd(cmd, timeout=timeout + 5)
        return rc == 0

    # -- status queries -------------------------------------------------------

    def _script_for(self, host: str, script: str) -> str:
        if is_local(host):
            return f"{script} | ConvertTo-Json -Compress"
        return (
            f"Invoke-Command -ComputerName {_quote(host)} -ErrorAction Stop "
            f"-ScriptBlock {{ {script} }} | ConvertTo-Json -Compress"
        )

    def _query(self, host: str, script: str) -> Any:
        cmd = [self.executable, "-NoProfile", "-NonInteractive", "-Command", self._script_for(host, script)]
        rc, out, err = run_cmd(cmd, timeout=self.timeout)
        if rc != 0:
            raise StatusQueryError(host, err or f"PowerShell exited with code {rc}")
        if not out:
            return None
        try:
            return json.loads(out)
        except json.JSONDecodeError as e:
            raise StatusQueryError(host, f"unparseable PowerShell output: {e}") from e

    def get_status(self, host: str) -> RawStatus:
        data = self._query(host, _STATUS_SCRIPT)
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise StatusQueryError(host, "Get-MpComputerStatus returned no data")
        try:
            return RawStatus.model_validate(data)
        except ValidationError as e:
            raise StatusQueryError(host, f"unexpected status shape: {e}") from e

    def get_threats(self, host: str) -> list[dict[str, Any]]:
        data = self._query(host, _THREAT_SCRIPT)
        if data is None:
            return []
        # ConvertTo-Json unwraps single-element arrays into a bare object.
        if isinstance(data, dict):
            return [data]
        if isinstance(data, list):
            return [entry for entry in data if isinstance(entry, dict)]
        raise StatusQueryError(host, "Get-MpThreat returned an unsupported response")
