"""PM2 process supervisor client.

Talks to the local PM2 daemon through the ``pm2`` command line tool.
Every failure (missing binary, non-zero exit, unparseable output) is
raised as a SupervisorError so callers only need to handle one type.
"""

import asyncio
import json
import logging
import shutil
from dataclasses import dataclass
from typing import Any, Optional

from .errors import SupervisorConnectionError, SupervisorError

logger = logging.getLogger("telegram_pm2.pm2_client")


@dataclass(frozen=True)
class ProcessDescriptor:
    """A process as reported by ``pm2 jlist``."""

    name: str
    status: str
    pm_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessDescriptor":
        pm2_env = data.get("pm2_env") or {}
        return cls(
            name=str(data.get("name", "?")),
            status=str(pm2_env.get("status", "unknown")),
            pm_id=data.get("pm_id"),
        )


class Pm2Client:
    """Async wrapper around the pm2 CLI."""

    def __init__(self, pm2_bin: str = "pm2"):
        self.pm2_bin = shutil.which(pm2_bin) or pm2_bin

    async def _run(self, operation: str, *args: str) -> str:
        """Run a pm2 subcommand and return its stdout."""
        cmd = [self.pm2_bin, *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            raise SupervisorError(operation, str(e)) from e

        if process.returncode != 0:
            reason = stderr.decode(errors="replace").strip() or f"exit code {process.returncode}"
            raise SupervisorError(operation, reason)

        return stdout.decode(errors="replace")

    async def connect(self) -> None:
        """Check that the PM2 daemon is reachable.

        Raises:
            SupervisorConnectionError: If pm2 cannot be run or the daemon does not answer
        """
        try:
            await self._run("connect", "ping")
        except SupervisorError as e:
            raise SupervisorConnectionError(e.reason) from e
        logger.info("Connected to PM2")

    async def list(self) -> list[ProcessDescriptor]:
        """Return a snapshot of all processes managed by PM2."""
        output = await self._run("list", "jlist")
        return [ProcessDescriptor.from_dict(item) for item in parse_jlist(output)]

    async def restart(self, process_id: str) -> None:
        """Restart a process by PM2 id or name."""
        await self._run("restart", "restart", process_id)
        logger.info(f"Restarted PM2 process {process_id}")


def parse_jlist(output: str) -> list[dict[str, Any]]:
    """Extract the JSON process array from ``pm2 jlist`` output.

    pm2 may print daemon notices (e.g. ``[PM2] Spawning PM2 daemon``) before
    the JSON payload, so parsing starts at the first line that opens an array.
    """
    lines = output.splitlines()
    for index, line in enumerate(lines):
        if not line.lstrip().startswith("[") or line.lstrip().startswith("[PM2"):
            continue
        try:
            data = json.loads("\n".join(lines[index:]))
        except json.JSONDecodeError as e:
            raise SupervisorError("list", f"invalid jlist output: {e}") from e
        if not isinstance(data, list):
            break
        return [item for item in data if isinstance(item, dict)]

    raise SupervisorError("list", "no process list in pm2 output")
