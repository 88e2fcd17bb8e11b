"""Stream tailer runtime worker (DynamoDB Stream -> sam local invoke)."""

from __future__ import annotations

import argparse
from dataclasses import replace
from enum import Enum
import logging
from pathlib import Path
import signal
import threading
from typing import Any

from stream_invoker.logging_utils import configure_logging
from stream_invoker.streams.client import DynamoDbStreamsProvider, build_streams_provider

from .config import TailerConfig, TailerConfigError, load_tailer_config
from .cursor import CursorManager
from .dispatcher import BatchSink, DispatchCancelled, EventStager, SamLocalDispatcher
from .fetcher import BatchFetcher, FetchExpired, FetchFailed
from .locator import StreamIdentity, StreamLocator
from .observability import TailerRunMetrics


logger = logging.getLogger("stream_invoker.tailer.worker")


class TailerState(str, Enum):
    BOOTSTRAPPING = "BOOTSTRAPPING"
    POLLING = "POLLING"
    STOPPED = "STOPPED"
    TERMINATED = "TERMINATED"


class StreamTailerWorker:
    """Single-threaded poll loop over one shard.

    The current shard iterator is owned here and nowhere else. Fetch, dispatch
    and the inter-cycle sleep run strictly in sequence, and the stop event is
    honoured at every one of those suspension points.
    """

    def __init__(
        self,
        config: TailerConfig,
        *,
        provider: DynamoDbStreamsProvider | None = None,
        sink: BatchSink | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.stop_event = stop_event or threading.Event()
        provider = provider or build_streams_provider(region=config.region, endpoint_url=config.endpoint_url)
        self.locator = StreamLocator(provider)
        self.cursors = CursorManager(provider)
        self.fetcher = BatchFetcher(provider, max_records=config.poll_max_records)
        self.sink = sink or SamLocalDispatcher(
            config.invoke,
            EventStager(config.event_file),
            stop_event=self.stop_event,
        )
        self.metrics = TailerRunMetrics(table_name=config.table_name, metrics_path=config.metrics_path)
        self.state = TailerState.BOOTSTRAPPING
        self.identity: StreamIdentity | None = None
        self._cursor: str | None = None

    @property
    def cursor(self) -> str | None:
        return self._cursor

    def stop(self) -> None:
        self.stop_event.set()

    def bootstrap(self) -> bool:
        """Retry topology resolution until stream and shard are both known."""
        logger.info("Bootstrapping stream tailer table=%s", self.config.table_name, extra={"transition": True})
        self._transition(TailerState.BOOTSTRAPPING)
        while not self.stop_event.is_set():
            self.metrics.bump("bootstrap_attempts_total")
            identity = self.locator.resolve(self.config.table_name)
            if identity is not None:
                self.identity = identity
                self._cursor = self.cursors.mint_initial(identity)
                logger.info(
                    "Resolved table=%s stream=%s shard=%s",
                    self.config.table_name,
                    identity.stream_arn,
                    identity.shard_id,
                    extra={"transition": True},
                )
                self._transition(TailerState.POLLING)
                return True
            logger.info(
                "Stream not resolved for table=%s, retrying in %s seconds",
                self.config.table_name,
                self.config.poll_sleep_seconds,
            )
            if self._sleep():
                break
        self._transition(TailerState.STOPPED)
        return False

    def poll_once(self) -> int:
        if self.identity is None or self._cursor is None:
            raise RuntimeError("TAILER_NOT_BOOTSTRAPPED")
        logger.info("Polling for new DynamoDB stream records...")
        self.metrics.bump("cycles_total")
        result = self.fetcher.fetch(self._cursor)
        if isinstance(result, FetchExpired):
            self.metrics.bump("iterator_expired_total")
            self._cursor = None
            self._cursor = self.cursors.remint(self.identity)
            return 0
        if isinstance(result, FetchFailed):
            raise result.error

        self._cursor = result.next_cursor
        if not result.records:
            self.metrics.bump("empty_polls_total")
            return 0
        logger.info("Found %s records, invoking Lambda...", len(result.records))
        self.sink.deliver(result.records)
        self.metrics.bump("batches_dispatched_total")
        self.metrics.bump("records_total", len(result.records))
        return len(result.records)

    def run_forever(self, *, max_cycles: int | None = None) -> TailerState:
        try:
            if self.identity is None and not self.bootstrap():
                return self.state
            cycles = 0
            while not self.stop_event.is_set():
                try:
                    self.poll_once()
                except Exception:
                    self._export_metrics()
                    raise
                self._export_metrics()
                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break
                logger.info("Sleeping for %s seconds...", self.config.poll_sleep_seconds)
                if self._sleep():
                    break
        except DispatchCancelled:
            logger.warning("Lambda invocation cancelled by stop request table=%s", self.config.table_name)
        except Exception:
            self._transition(TailerState.TERMINATED)
            logger.exception("Stream tailer terminated table=%s", self.config.table_name)
            raise
        self._transition(TailerState.STOPPED)
        return self.state

    def _export_metrics(self) -> None:
        try:
            self.metrics.export()
        except OSError as exc:
            logger.warning("Run metrics export failed path=%s error=%s", self.config.metrics_path, exc)

    def _sleep(self) -> bool:
        return self.stop_event.wait(self.config.poll_sleep_seconds)

    def _transition(self, state: TailerState) -> None:
        if state == self.state:
            return
        logger.info("Stream tailer state %s -> %s", self.state.value, state.value, extra={"transition": True})
        self.state = state


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum: int, frame: Any) -> None:
        logger.info("Received signal %s, stopping", signum, extra={"transition": True})
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Tail a DynamoDB Stream into sam local invoke")
    parser.add_argument("--profile", default=None, help="Path to stream tailer profile YAML")
    parser.add_argument("--once", action="store_true", help="Process one polling cycle and exit")
    parser.add_argument("--poll-seconds", type=float, default=None, help="Override poll sleep seconds")
    parser.add_argument("--max-records", type=int, default=None, help="Override GetRecords limit")
    args = parser.parse_args(argv)

    try:
        config = load_tailer_config(Path(args.profile) if args.profile else None)
    except TailerConfigError as exc:
        configure_logging()
        logger.error("Stream tailer configuration invalid: %s", exc)
        return 1
    if args.poll_seconds is not None and args.poll_seconds > 0:
        config = replace(config, poll_sleep_seconds=float(args.poll_seconds))
    if args.max_records is not None and args.max_records > 0:
        config = replace(config, poll_max_records=int(args.max_records))

    configure_logging(log_path=config.log_path)
    try:
        worker = StreamTailerWorker(config)
    except Exception:
        logger.exception("Stream tailer startup failed table=%s", config.table_name)
        return 1
    _install_signal_handlers(worker.stop_event)
    try:
        worker.run_forever(max_cycles=1 if args.once else None)
    except Exception:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
