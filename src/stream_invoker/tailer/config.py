"""Stream tailer configuration loader (profile YAML + environment)."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
from typing import Any, Mapping

import yaml

from stream_invoker.streams.client import MAX_RECORDS_PER_CALL

_ENV_PATTERN = re.compile(r"^\$\{([^}:]+)(?::-([^}]*))?\}$")

DEFAULT_EVENT_FILE = ".dynamodb-stream-event.json"
DEFAULT_POLL_SLEEP_SECONDS = 5.0


class TailerConfigError(ValueError):
    pass


@dataclass(frozen=True)
class InvokeConfig:
    sam_executable: str
    template_file: str
    function_name: str
    region: str | None
    env_file: str | None
    docker_network: str | None
    docker_volume_basedir: str | None
    container_host: str | None
    container_host_interface: str | None
    stdout_path: str | None
    stderr_path: str | None
    timeout_seconds: float | None


@dataclass(frozen=True)
class TailerConfig:
    profile_id: str
    table_name: str
    region: str | None
    endpoint_url: str | None
    poll_sleep_seconds: float
    poll_max_records: int
    event_file: Path
    metrics_path: Path | None
    log_path: str | None
    invoke: InvokeConfig


def load_tailer_config(profile_path: Path | None = None) -> TailerConfig:
    payload: Mapping[str, Any] = {}
    if profile_path is not None:
        if not profile_path.exists():
            raise TailerConfigError(f"TAILER_PROFILE_MISSING:{profile_path}")
        loaded = yaml.safe_load(profile_path.read_text(encoding="utf-8"))
        if not isinstance(loaded, Mapping):
            raise TailerConfigError("TAILER_PROFILE_INVALID")
        payload = loaded
    profile_id = str(payload.get("profile_id") or "env").strip() or "env"

    section = payload.get("stream_tailer") if isinstance(payload.get("stream_tailer"), Mapping) else {}
    wiring = section.get("wiring") if isinstance(section.get("wiring"), Mapping) else {}
    invoke = section.get("invoke") if isinstance(section.get("invoke"), Mapping) else {}

    table_name = _none_if_blank(_env(wiring.get("table_name")) or os.getenv("TABLE_NAME"))
    if not table_name:
        raise TailerConfigError("TABLE_NAME_MISSING")
    region = _none_if_blank(
        _env(wiring.get("region")) or os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
    )
    endpoint_url = _none_if_blank(
        _env(wiring.get("endpoint_url")) or os.getenv("AWS_ENDPOINT") or os.getenv("AWS_ENDPOINT_URL")
    )

    template_file = _none_if_blank(_env(invoke.get("template_file")) or os.getenv("SAM_TEMPLATE_FILE"))
    if not template_file:
        raise TailerConfigError("SAM_TEMPLATE_FILE_MISSING")
    function_name = _none_if_blank(_env(invoke.get("function_name")) or os.getenv("LAMBDA_FUNCTION_NAME"))
    if not function_name:
        raise TailerConfigError("LAMBDA_FUNCTION_NAME_MISSING")

    metrics_path = _none_if_blank(_env(wiring.get("metrics_path")))
    poll_sleep_value = _none_if_blank(_env(wiring.get("poll_sleep_seconds")))
    poll_max_value = _none_if_blank(_env(wiring.get("poll_max_records")))
    timeout_value = _none_if_blank(_env(invoke.get("timeout_seconds")))
    return TailerConfig(
        profile_id=profile_id,
        table_name=table_name,
        region=region,
        endpoint_url=endpoint_url,
        poll_sleep_seconds=(
            _positive_float(poll_sleep_value, "poll_sleep_seconds")
            if poll_sleep_value is not None
            else DEFAULT_POLL_SLEEP_SECONDS
        ),
        poll_max_records=(
            min(MAX_RECORDS_PER_CALL, _positive_int(poll_max_value, "poll_max_records"))
            if poll_max_value is not None
            else MAX_RECORDS_PER_CALL
        ),
        event_file=Path(str(_env(wiring.get("event_file")) or DEFAULT_EVENT_FILE)).resolve(),
        metrics_path=Path(metrics_path) if metrics_path else None,
        log_path=_none_if_blank(_env(wiring.get("log_path"))),
        invoke=InvokeConfig(
            sam_executable=str(_env(invoke.get("sam_executable")) or "sam").strip(),
            template_file=template_file,
            function_name=function_name,
            region=region,
            env_file=_none_if_blank(_env(invoke.get("env_file")) or os.getenv("ENV_FILE")),
            docker_network=_none_if_blank(_env(invoke.get("docker_network")) or os.getenv("DOCKER_NETWORK")),
            docker_volume_basedir=_none_if_blank(
                _env(invoke.get("docker_volume_basedir")) or os.getenv("CDK_OUT_ABSOLUTE_PATH")
            ),
            container_host=_none_if_blank(_env(invoke.get("container_host", "host.docker.internal"))),
            container_host_interface=_none_if_blank(_env(invoke.get("container_host_interface", "0.0.0.0"))),
            stdout_path=_none_if_blank(_env(invoke.get("stdout_path"))),
            stderr_path=_none_if_blank(_env(invoke.get("stderr_path"))),
            timeout_seconds=(
                _positive_float(timeout_value, "timeout_seconds") if timeout_value is not None else None
            ),
        ),
    )


def _env(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    token = value.strip()
    match = _ENV_PATTERN.fullmatch(token)
    if not match:
        return value
    return os.getenv(match.group(1), match.group(2) or "")


def _none_if_blank(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _positive_float(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise TailerConfigError(f"TAILER_FIELD_INVALID:{field_name}") from exc
    if number <= 0:
        raise TailerConfigError(f"TAILER_FIELD_NOT_POSITIVE:{field_name}")
    return number


def _positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise TailerConfigError(f"TAILER_FIELD_INVALID:{field_name}") from exc
    if number <= 0:
        raise TailerConfigError(f"TAILER_FIELD_NOT_POSITIVE:{field_name}")
    return number
