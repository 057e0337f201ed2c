"""Speedtest measurement runner (Ookla CLI)."""

from __future__ import annotations

import json
import logging
import math
import subprocess
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import SpeedtestConfig
from .errors import DecodeFailed, ExecutionFailed
from .models import InterfaceInfo, MeasurementResult, Ping, ResultLink, ServerInfo, Transfer

LOGGER = logging.getLogger(__name__)

BASE_ARGS = ["--accept-license", "--accept-gdpr", "--format", "json", "--unit", "B/s"]


def build_command(config: SpeedtestConfig) -> List[str]:
    command = [config.binary, *BASE_ARGS]
    if config.server_id:
        command += ["-s", str(config.server_id)]
    if config.interface:
        command += ["-I", config.interface]
    if config.source_ip:
        command += ["-i", config.source_ip]
    if config.extra_args:
        command += list(config.extra_args)
    return command


def run_speedtest(config: SpeedtestConfig) -> MeasurementResult:
    command = build_command(config)
    LOGGER.debug("running speedtest: %s", " ".join(command))

    try:
        # stderr is inherited so the CLI's own diagnostics reach the operator
        completed = subprocess.run(
            command,
            check=True,
            stdout=subprocess.PIPE,
            text=True,
            timeout=config.timeout_seconds,
        )
    except subprocess.CalledProcessError as exc:
        raise ExecutionFailed(
            f"speedtest failed: exit status {exc.returncode}", returncode=exc.returncode
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise ExecutionFailed(f"speedtest failed: timed out after {exc.timeout}s") from exc
    except OSError as exc:
        raise ExecutionFailed(f"speedtest failed: {exc}") from exc

    LOGGER.debug("speedtest result: %s", completed.stdout)
    try:
        data = json.loads(completed.stdout)
    except json.JSONDecodeError as exc:
        raise DecodeFailed(f"failed to decode speedtest output: {exc}") from exc

    result = parse_result(data)
    LOGGER.info("recorded speedtest result %s", result.result.url)
    return result


def parse_result(data: Any) -> MeasurementResult:
    """Convert the CLI's JSON payload into a MeasurementResult."""

    if not isinstance(data, dict):
        raise DecodeFailed(f"failed to decode speedtest output: expected an object, got {type(data).__name__}")

    try:
        ping = _section(data, "ping")
        download = _section(data, "download")
        upload = _section(data, "upload")
        interface = _section(data, "interface", required=False)
        server = _section(data, "server", required=False)
        link = _section(data, "result", required=False)

        return MeasurementResult(
            timestamp=_parse_timestamp(data.get("timestamp")),
            ping=Ping(
                latency_ms=_number(ping, "latency"),
                jitter_ms=_number(ping, "jitter"),
            ),
            download=_transfer(download),
            upload=_transfer(upload),
            packet_loss=_number(data, "packetLoss"),
            isp=_text(data, "isp"),
            interface=InterfaceInfo(
                internal_ip=_text(interface, "internalIp"),
                name=_text(interface, "name"),
                mac_addr=_text(interface, "macAddr"),
                is_vpn=bool(interface.get("isVpn", False)),
                external_ip=_text(interface, "externalIp"),
            ),
            server=ServerInfo(
                id=int(_number(server, "id")),
                name=_text(server, "name"),
                location=_text(server, "location"),
                country=_text(server, "country"),
                host=_text(server, "host"),
                port=int(_number(server, "port")),
                ip=_text(server, "ip"),
            ),
            result=ResultLink(id=_text(link, "id"), url=_text(link, "url")),
        )
    except (TypeError, ValueError, OverflowError) as exc:
        raise DecodeFailed(f"failed to decode speedtest output: {exc}") from exc


def _section(data: Dict, key: str, required: bool = True) -> Dict:
    value = data.get(key)
    if value is None:
        if required:
            raise DecodeFailed(f"failed to decode speedtest output: missing '{key}'")
        return {}
    if not isinstance(value, dict):
        raise DecodeFailed(f"failed to decode speedtest output: '{key}' is not an object")
    return value


def _transfer(section: Dict) -> Transfer:
    return Transfer(
        bandwidth=_number(section, "bandwidth"),
        bytes=_number(section, "bytes"),
        elapsed=_number(section, "elapsed"),
    )


def _number(section: Dict, key: str) -> float:
    value = section.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' is not a number: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"'{key}' is not a finite number: {value!r}")
    return number


def _text(section: Dict, key: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' is not a string: {value!r}")
    return value


def _parse_timestamp(raw: Optional[str]) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    if not isinstance(raw, str):
        raise ValueError(f"'timestamp' is not a string: {raw!r}")
    clean = raw.replace("Z", "+00:00") if raw.endswith("Z") else raw
    parsed = datetime.fromisoformat(clean)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
