"""Reachability probe strategies.

Every strategy exposes ``probe(target, timeout_ms) -> ProbeResult``. Network
failures never raise: they come back as ``reachable=False`` with ``error``
set and the measured latency. Anything else going wrong inside a probe is
wrapped in ``UnexpectedProbeError`` so callers can tell a down target from a
broken checker.
"""

import asyncio
import ipaddress
import logging
import math
import platform
import re
import shutil
import socket
import time
from typing import Any, Awaitable, Callable, List, Optional

import httpx

from reachwatch.errors import ConfigurationError, UnexpectedProbeError
from reachwatch.metrics import probe_latency_seconds, probes_total
from reachwatch.monitor.models import CheckType, HttpMethod, MonitorConfig, ProbeResult

logger = logging.getLogger(__name__)

# "time=12.3 ms", "time = 12 ms" or Windows "time<1ms"
_LATENCY_PATTERN = re.compile(r"time\s*([=<])\s*(\d+(?:\.\d+)?)\s*ms", re.IGNORECASE)
# "PING example.com (93.184.216.34)" or Windows "Pinging example.com [93.184.216.34]"
_NUMERIC_HOST_PATTERN = re.compile(
    r"^PING(?:ING)?\s+\S+\s+[\(\[]([0-9a-fA-F:.%]+)[\)\]]",
    re.IGNORECASE | re.MULTILINE,
)


def _elapsed_ms(started: float, cap_ms: Optional[float] = None) -> float:
    elapsed = (time.perf_counter() - started) * 1000.0
    if cap_ms is not None:
        elapsed = min(elapsed, cap_ms)
    return round(elapsed, 3)


def parse_ping_latency_ms(output: str) -> Optional[float]:
    """Parse the round-trip time from ping command output.

    Windows "time<Nms" is interpreted as N/2 ms (midpoint estimate).

    Examples:
        >>> parse_ping_latency_ms("64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=12.3 ms")
        12.3
        >>> parse_ping_latency_ms("Reply from 1.1.1.1: bytes=32 time<1ms TTL=57")
        0.5
        >>> parse_ping_latency_ms("Request timed out.")
    """
    if not output:
        return None

    match = _LATENCY_PATTERN.search(output)
    if not match:
        return None

    value = float(match.group(2))
    if match.group(1) == "<":
        return value / 2.0
    return value


def parse_ping_numeric_host(output: str) -> Optional[str]:
    """Extract the address ping resolved the target to, if printed."""
    if not output:
        return None
    match = _NUMERIC_HOST_PATTERN.search(output)
    return match.group(1) if match else None


def build_ping_command(ping_cmd: str, target: str, timeout: float) -> List[str]:
    """Build a single-packet ping command for the current platform.

    Linux takes -W in seconds, macOS takes -W in milliseconds and Windows
    takes -w in milliseconds.
    """
    system = platform.system()
    if system == "Windows":
        timeout_ms = max(int(math.ceil(timeout * 1000)), 1)
        return [ping_cmd, "-n", "1", "-w", str(timeout_ms), target]
    if system == "Darwin":
        timeout_ms = max(int(math.ceil(timeout * 1000)), 1)
        return [ping_cmd, "-c", "1", "-W", str(timeout_ms), target]
    return [ping_cmd, "-c", "1", "-W", str(max(int(math.ceil(timeout)), 1)), target]


class ProbeStrategy:
    """Base class for a single-attempt reachability check."""

    check_type: CheckType

    async def probe(self, target: str, timeout_ms: int) -> ProbeResult:
        """Run one probe against ``target``, bounded by ``timeout_ms``.

        Raises:
            ConfigurationError: target is empty or timeout is not positive.
            UnexpectedProbeError: the probe broke for a non-network reason.
        """
        if target is None or not str(target).strip():
            raise ConfigurationError("target cannot be empty")
        if timeout_ms is None or timeout_ms <= 0:
            raise ConfigurationError(f"timeout must be greater than 0 (got {timeout_ms})")

        target = str(target).strip()
        try:
            result = await self._probe(target, timeout_ms / 1000.0)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("Unexpected %s probe failure for %s: %s", self.check_type.value, target, e)
            probes_total.labels(check_type=self.check_type.value, result="error").inc()
            raise UnexpectedProbeError(self.check_type.value, target, e) from e

        probes_total.labels(
            check_type=self.check_type.value,
            result="success" if result.reachable else "failure",
        ).inc()
        if result.reachable:
            probe_latency_seconds.labels(check_type=self.check_type.value).observe(
                result.latency_ms / 1000.0
            )
        logger.debug(
            "%s probe of %s: reachable=%s latency=%.2fms error=%s",
            self.check_type.value,
            target,
            result.reachable,
            result.latency_ms,
            result.error,
        )
        return result

    async def _probe(self, target: str, timeout: float) -> ProbeResult:
        raise NotImplementedError


class PingProbe(ProbeStrategy):
    """ICMP echo using the system ping command.

    The system binary works without raw socket privileges, which keeps the
    checker usable in unprivileged containers.
    """

    check_type = CheckType.PING

    async def _probe(self, target: str, timeout: float) -> ProbeResult:
        ping_cmd = shutil.which("ping")
        if not ping_cmd:
            raise RuntimeError("ping command not found in PATH")

        cmd = build_ping_command(ping_cmd, target, timeout)
        started = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise RuntimeError(f"ping command could not be started: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started, timeout * 1000.0),
                error="Ping timeout",
            )
        finally:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass  # Exited between the check and the kill
                await proc.wait()

        elapsed = _elapsed_ms(started)
        output = (stdout or b"").decode("utf-8", errors="replace")
        metadata = {"rawOutput": output}
        numeric_host = parse_ping_numeric_host(output)
        if numeric_host is None and _is_ip_literal(target):
            numeric_host = target
        if numeric_host:
            metadata["resolvedIp"] = numeric_host

        if proc.returncode != 0:
            return ProbeResult(
                reachable=False,
                latency_ms=elapsed,
                error=f"No reply (ping exit code {proc.returncode})",
                metadata=metadata,
            )

        latency = parse_ping_latency_ms(output)
        if latency is None:
            logger.debug("Could not parse ping latency for %s, using wall-clock time", target)
            latency = elapsed
        return ProbeResult(reachable=True, latency_ms=latency, metadata=metadata)


class HttpProbe(ProbeStrategy):
    """Single HTTP(S) request measuring time to a drained response.

    Certificates are not verified: this answers "is the server answering",
    not "should it be trusted". The request is never retried.
    """

    check_type = CheckType.HTTP

    def __init__(
        self,
        method: HttpMethod = HttpMethod.GET,
        accept_any_status: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.method = HttpMethod(method)
        self.accept_any_status = accept_any_status
        self._transport = transport

    def _is_accepted(self, status_code: int) -> bool:
        if self.accept_any_status:
            return True
        return 200 <= status_code < 400

    async def _request(self, url: str, timeout: float) -> int:
        async with httpx.AsyncClient(
            verify=False,
            timeout=timeout,
            follow_redirects=False,
            transport=self._transport,
        ) as client:
            async with client.stream(self.method.value, url) as response:
                # Drain without keeping the body
                async for _ in response.aiter_bytes():
                    pass
                return response.status_code

    async def _probe(self, url: str, timeout: float) -> ProbeResult:
        started = time.perf_counter()
        try:
            status_code = await asyncio.wait_for(self._request(url, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started, timeout * 1000.0),
                error="Request timeout",
            )
        except httpx.HTTPError as e:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started),
                error=f"Request failed: {str(e) or type(e).__name__}",
            )

        latency = _elapsed_ms(started)
        metadata = {"statusCode": str(status_code)}
        if self._is_accepted(status_code):
            return ProbeResult(reachable=True, latency_ms=latency, metadata=metadata)
        return ProbeResult(
            reachable=False,
            latency_ms=latency,
            error=f"Unexpected status code {status_code}",
            metadata=metadata,
        )


class TcpProbe(ProbeStrategy):
    """Plain TCP connect to host:port; the socket is closed straight away."""

    check_type = CheckType.TCP

    def __init__(self, port: int):
        self.port = port

    async def _probe(self, host: str, timeout: float) -> ProbeResult:
        metadata = {"port": str(self.port)}
        started = time.perf_counter()
        writer = None
        try:
            future = asyncio.open_connection(host, self.port)
            _, writer = await asyncio.wait_for(future, timeout=timeout)
            return ProbeResult(reachable=True, latency_ms=_elapsed_ms(started), metadata=metadata)
        except asyncio.TimeoutError:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started, timeout * 1000.0),
                error="Connection timeout",
                metadata=metadata,
            )
        except ConnectionRefusedError:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started),
                error="Connection refused",
                metadata=metadata,
            )
        except socket.gaierror as e:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started),
                error=f"DNS resolution failed: {e}",
                metadata=metadata,
            )
        except OSError as e:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started),
                error=f"Connection failed: {e}",
                metadata=metadata,
            )
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError:
                    pass  # Ignore cleanup errors


Resolver = Callable[[str], Awaitable[List[Any]]]


class DnsProbe(ProbeStrategy):
    """Forward lookup of a domain.

    ``getaddrinfo`` has no timeout of its own, so the lookup task is raced
    against a timer task. Whichever finishes first wins; the other is
    cancelled and never awaited.
    """

    check_type = CheckType.DNS

    def __init__(self, resolver: Optional[Resolver] = None):
        self._resolver = resolver

    async def _resolve(self, domain: str) -> List[Any]:
        if self._resolver is not None:
            return await self._resolver(domain)
        loop = asyncio.get_running_loop()
        return await loop.getaddrinfo(domain, None, type=socket.SOCK_STREAM)

    async def _probe(self, domain: str, timeout: float) -> ProbeResult:
        started = time.perf_counter()
        lookup = asyncio.create_task(self._resolve(domain))
        timer = asyncio.create_task(asyncio.sleep(timeout))
        try:
            done, _ = await asyncio.wait({lookup, timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (lookup, timer):
                if not task.done():
                    task.cancel()

        if lookup not in done:
            return ProbeResult(
                reachable=False,
                latency_ms=_elapsed_ms(started, timeout * 1000.0),
                error="DNS lookup timeout",
            )

        elapsed = _elapsed_ms(started)
        try:
            addresses = lookup.result()
        except socket.gaierror as e:
            return ProbeResult(reachable=False, latency_ms=elapsed, error=f"DNS resolution failed: {e}")
        except OSError as e:
            return ProbeResult(reachable=False, latency_ms=elapsed, error=f"DNS lookup failed: {e}")

        if not addresses:
            return ProbeResult(reachable=False, latency_ms=elapsed, error="No addresses returned")

        family, _, _, _, sockaddr = addresses[0]
        metadata = {
            "resolvedIp": str(sockaddr[0]),
            "ipFamily": "IPv6" if family == socket.AF_INET6 else "IPv4",
            "addressCount": str(len({entry[4][0] for entry in addresses})),
        }
        logger.debug("Resolved %s to %s", domain, metadata["resolvedIp"])
        return ProbeResult(reachable=True, latency_ms=elapsed, metadata=metadata)


def _is_ip_literal(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def build_probe(config: MonitorConfig) -> ProbeStrategy:
    """Select the probe strategy for a monitor configuration."""
    if config.check_type is CheckType.PING:
        return PingProbe()
    if config.check_type is CheckType.HTTP:
        return HttpProbe(method=config.http_method, accept_any_status=config.accept_any_status)
    if config.check_type is CheckType.TCP:
        return TcpProbe(port=config.port)
    if config.check_type is CheckType.DNS:
        return DnsProbe()
    raise ConfigurationError(f"unknown checkType: {config.check_type}")
