"""Batch staging + `sam local invoke` dispatch."""

from __future__ import annotations

import base64
from contextlib import ExitStack
from datetime import datetime
import json
import logging
from pathlib import Path
import subprocess
import threading
import time
from typing import Any, Callable, Mapping, Protocol, Sequence

from .config import InvokeConfig

logger = logging.getLogger("stream_invoker.tailer.dispatcher")

_TERMINATE_GRACE_SECONDS = 10.0


class DispatchError(RuntimeError):
    pass


class DispatchCancelled(DispatchError):
    pass


class BatchSink(Protocol):
    def deliver(self, records: Sequence[Mapping[str, Any]]) -> None:
        ...


class EventStager:
    """Writes the one staged event file the invocation tool reads from."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def stage(self, records: Sequence[Mapping[str, Any]]) -> Path:
        envelope = {"Records": list(records)}
        data = json.dumps(envelope, ensure_ascii=True, separators=(",", ":"), default=_json_default)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.unlink(missing_ok=True)
        self.path.write_text(data, encoding="utf-8")
        logger.info("Wrote event path=%s records=%s bytes=%s", self.path, len(envelope["Records"]), len(data))
        return self.path


def build_sam_command(invoke: InvokeConfig, event_file: Path) -> list[str]:
    command = [invoke.sam_executable, "local", "invoke"]
    optional_flags = (
        ("--docker-network", invoke.docker_network),
        ("--docker-volume-basedir", invoke.docker_volume_basedir),
        ("--container-host", invoke.container_host),
        ("--container-host-interface", invoke.container_host_interface),
        ("--region", invoke.region),
        ("--env-vars", invoke.env_file),
    )
    for flag, value in optional_flags:
        if value:
            command.extend([flag, value])
    command.extend(["--template", invoke.template_file])
    command.extend(["--event", str(event_file)])
    command.append(invoke.function_name)
    return command


class SamLocalDispatcher:
    def __init__(
        self,
        invoke: InvokeConfig,
        stager: EventStager,
        *,
        stop_event: threading.Event | None = None,
        popen: Callable[..., Any] = subprocess.Popen,
        wait_interval_seconds: float = 0.5,
    ) -> None:
        self.invoke = invoke
        self.stager = stager
        self.stop_event = stop_event
        self._popen = popen
        self._wait_interval = wait_interval_seconds

    def deliver(self, records: Sequence[Mapping[str, Any]]) -> None:
        if not records:
            return
        event_path = self.stager.stage(records)
        command = build_sam_command(self.invoke, event_path)
        logger.info("Running shell command: %s", subprocess.list2cmdline(command))
        started = time.monotonic()
        with ExitStack() as stack:
            stdout = self._console(stack, self.invoke.stdout_path)
            stderr = self._console(stack, self.invoke.stderr_path)
            try:
                process = self._popen(command, stdout=stdout, stderr=stderr, shell=False)  # noqa: S603
            except FileNotFoundError as exc:
                raise DispatchError(f"SAM_EXECUTABLE_MISSING:{self.invoke.sam_executable}") from exc
            returncode = self._wait(process)
        duration_ms = int((time.monotonic() - started) * 1000)
        if returncode != 0:
            logger.error(
                "sam local invoke failed function=%s exit_code=%s duration_ms=%s",
                self.invoke.function_name,
                returncode,
                duration_ms,
            )
            raise DispatchError(f"SAM_INVOKE_EXIT_NONZERO:exit_code={returncode}")
        logger.info(
            "sam local invoke completed function=%s records=%s duration_ms=%s",
            self.invoke.function_name,
            len(records),
            duration_ms,
        )

    def _wait(self, process: Any) -> int:
        timeout = self.invoke.timeout_seconds
        deadline = time.monotonic() + timeout if timeout else None
        while True:
            try:
                return int(process.wait(timeout=self._wait_interval))
            except subprocess.TimeoutExpired:
                pass
            if self.stop_event is not None and self.stop_event.is_set():
                _terminate(process)
                raise DispatchCancelled("SAM_INVOKE_CANCELLED")
            if deadline is not None and time.monotonic() >= deadline:
                process.kill()
                process.wait()
                raise DispatchError(f"SAM_INVOKE_TIMEOUT:timeout_seconds={timeout}")

    @staticmethod
    def _console(stack: ExitStack, path: str | None) -> Any:
        if not path:
            return None
        return stack.enter_context(open(path, "ab", buffering=0))


def _terminate(process: Any) -> None:
    process.terminate()
    try:
        process.wait(timeout=_TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"Object of type {value.__class__.__name__} is not JSON serializable")
