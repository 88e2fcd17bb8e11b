"""Single bounded GetRecords call per poll cycle."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Union

from stream_invoker.streams.client import (
    EXPIRED_ITERATOR_CODE,
    DynamoDbStreamsProvider,
    error_code,
    error_detail,
)

logger = logging.getLogger("stream_invoker.tailer.fetcher")


class ProtocolViolationError(RuntimeError):
    pass


@dataclass(frozen=True)
class FetchOk:
    records: list[dict[str, Any]]
    next_cursor: str


@dataclass(frozen=True)
class FetchExpired:
    cursor: str


@dataclass(frozen=True)
class FetchFailed:
    error: Exception = field(compare=False)


FetchResult = Union[FetchOk, FetchExpired, FetchFailed]


class BatchFetcher:
    def __init__(self, provider: DynamoDbStreamsProvider, *, max_records: int) -> None:
        self.provider = provider
        self.max_records = max_records

    def fetch(self, cursor: str) -> FetchResult:
        try:
            response = self.provider.get_records(cursor, self.max_records)
        except Exception as exc:
            code = error_code(exc)
            if code == EXPIRED_ITERATOR_CODE:
                return FetchExpired(cursor=cursor)
            logger.error("GetRecords failed code=%s detail=%s", code, error_detail(exc))
            return FetchFailed(error=exc)

        next_cursor = response.get("NextShardIterator")
        if not next_cursor:
            return FetchFailed(
                error=ProtocolViolationError(f"NEXT_SHARD_ITERATOR_MISSING:iterator={_short(cursor)}")
            )
        records = response.get("Records")
        if records is None:
            return FetchFailed(error=ProtocolViolationError(f"RECORDS_MISSING:iterator={_short(cursor)}"))
        return FetchOk(records=list(records), next_cursor=str(next_cursor))


def _short(cursor: str) -> str:
    if len(cursor) <= 48:
        return cursor
    return f"{cursor[:24]}...{cursor[-16:]}"
