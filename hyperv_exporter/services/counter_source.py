"""Counter sources: run WMI class queries and return typed rows."""

import asyncio
import base64
import json
import logging
import re
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import paramiko

from ..config.models import SourceConfig, SSHHostConfig
from ..errors import ConfigurationError, MalformedSchema, SourceUnavailable
from ..utils.transforms import parse_dmtf_datetime
from .retry_handler import RetryHandler
from .ssh_helper import SSHHelper


RawCounterRow = Dict[str, Any]

CLASS_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_]+$')

# Properties every ManagementObject carries that are not counters
EXCLUDED_PROPERTIES = (
    "__*", "Scope", "Path", "Options", "ClassPath", "Properties",
    "SystemProperties", "Qualifiers", "Site", "Container",
)

POWERSHELL = "powershell.exe"

# Concurrent SSH queries per source
SSH_WORKERS = 8


class CounterSource(ABC):
    """Read-only access to the host's performance-counter classes."""

    @abstractmethod
    async def query(self, class_name: str) -> List[RawCounterRow]:
        """
        Query all instances of a counter class.

        Args:
            class_name: WMI class name

        Returns:
            List[RawCounterRow]: Rows in source order, possibly empty

        Raises:
            SourceUnavailable: If the counter subsystem cannot be reached
            MalformedSchema: If the result cannot be decoded into rows
        """
        pass

    def close(self) -> None:
        """Release resources held across scrapes."""
        pass


class PowerShellCounterSource(CounterSource):
    """
    Query WMI through PowerShell and decode its JSON output.

    Subclasses decide where the script runs by implementing _run().
    """

    def __init__(
        self,
        namespace: str = "root\\cimv2",
        timeout: float = 30.0,
        retry_attempts: int = 2,
        retry_base_delay: float = 0.5,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize PowerShell counter source.

        Args:
            namespace: WMI namespace holding the counter classes
            timeout: Per-query timeout in seconds
            retry_attempts: Attempts per query for transient failures
            retry_base_delay: Initial backoff delay in seconds
            logger: Logger instance
        """
        self.namespace = namespace
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    def build_script(self, class_name: str) -> str:
        """
        Build the PowerShell script that dumps a class as a JSON array.

        Raises:
            MalformedSchema: If class_name is not a plain identifier
        """
        if not CLASS_NAME_PATTERN.match(class_name):
            raise MalformedSchema(f"Invalid counter class name: {class_name!r}", class_name=class_name)

        excluded = ",".join(EXCLUDED_PROPERTIES)
        return (
            "$ErrorActionPreference = 'Stop'; "
            f"$rows = @(Get-WmiObject -Namespace '{self.namespace}' -Class '{class_name}' | "
            f"Select-Object -Property * -ExcludeProperty {excluded}); "
            "if ($rows.Count -gt 0) { ConvertTo-Json -InputObject $rows -Compress -Depth 2 }"
        )

    async def query(self, class_name: str) -> List[RawCounterRow]:
        script = self.build_script(class_name)

        async def run_once() -> str:
            return await self._run(script)

        output = await RetryHandler.with_retry(
            run_once,
            max_attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            exceptions=(SourceUnavailable,),
            logger=self.logger
        )

        rows = parse_rows(output, class_name)
        self.logger.debug(f"{class_name}: {len(rows)} row(s)")
        return rows

    @abstractmethod
    async def _run(self, script: str) -> str:
        """
        Run a PowerShell script and return its stdout.

        Raises:
            SourceUnavailable: If the script could not run to completion
        """
        pass


class LocalCounterSource(PowerShellCounterSource):
    """Run queries with the local powershell.exe (exporter on the Hyper-V host)."""

    async def _run(self, script: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                POWERSHELL, "-NoProfile", "-NonInteractive", "-Command", script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise SourceUnavailable(f"Cannot start {POWERSHELL}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise SourceUnavailable(f"Query timed out after {self.timeout}s") from e

        if process.returncode != 0:
            message = stderr.decode('utf-8', errors='replace').strip()
            raise SourceUnavailable(f"{POWERSHELL} exited with {process.returncode}: {message}")

        return stdout.decode('utf-8', errors='replace')


class SSHCounterSource(PowerShellCounterSource):
    """Run queries on a remote Hyper-V host over SSH."""

    def __init__(self, host: SSHHostConfig, **kwargs):
        """
        Initialize SSH counter source.

        Args:
            host: Remote host configuration
            **kwargs: Passed to PowerShellCounterSource
        """
        super().__init__(**kwargs)
        self.host = host
        # Outlives every scrape's event loop, so asyncio.run() never joins
        # a query that is still blocked after its collector timed out
        self._executor = ThreadPoolExecutor(max_workers=SSH_WORKERS, thread_name_prefix="ssh-query")

    async def _run(self, script: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._run_blocking, encode_command(script))

    def _run_blocking(self, command: str) -> str:
        client = None
        try:
            client = SSHHelper.create_client(self.host, self.logger, timeout=self.timeout)
            return SSHHelper.exec_command(client, command, timeout=self.timeout, logger=self.logger)

        except (paramiko.SSHException, OSError, RuntimeError) as e:
            raise SourceUnavailable(f"{self.host.host}: {e}") from e

        finally:
            if client:
                SSHHelper.close_client(client, self.logger)

    def close(self) -> None:
        self._executor.shutdown(wait=False)


def encode_command(script: str) -> str:
    """Wrap a script in a powershell.exe -EncodedCommand invocation (UTF-16LE base64)."""
    encoded = base64.b64encode(script.encode('utf-16-le')).decode('ascii')
    return f"{POWERSHELL} -NoProfile -NonInteractive -EncodedCommand {encoded}"


def parse_rows(output: str, class_name: str) -> List[RawCounterRow]:
    """
    Decode ConvertTo-Json output into typed rows.

    An empty payload is zero rows, an object is one row and an array is one
    row per element. DMTF datetime strings become timezone-aware datetimes.

    Raises:
        MalformedSchema: If the payload is not a JSON object or array of objects
    """
    text = output.strip()
    if not text:
        return []

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedSchema(f"{class_name}: invalid JSON output: {e}", class_name=class_name) from e

    if isinstance(payload, dict):
        payload = [payload]

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise MalformedSchema(f"{class_name}: expected JSON object rows", class_name=class_name)

    return [_type_fields(item) for item in payload]


def _type_fields(item: Dict[str, Any]) -> RawCounterRow:
    row = {}
    for key, value in item.items():
        if isinstance(value, str):
            parsed = parse_dmtf_datetime(value)
            if parsed is not None:
                value = parsed
        row[key] = value
    return row


def create_source(config: SourceConfig, logger: logging.Logger) -> CounterSource:
    """
    Build the counter source described by configuration.

    Raises:
        ConfigurationError: If an ssh source has no host settings
    """
    options = dict(
        namespace=config.namespace,
        timeout=config.query_timeout_seconds,
        retry_attempts=config.retry_attempts,
        retry_base_delay=config.retry_base_delay,
        logger=logger
    )

    if config.type == "ssh":
        if config.ssh is None:
            raise ConfigurationError("ssh source requires host settings")
        return SSHCounterSource(config.ssh, **options)

    return LocalCounterSource(**options)
