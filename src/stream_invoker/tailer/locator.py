"""Stream/shard discovery for a single-shard DynamoDB table stream."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from botocore.exceptions import EndpointConnectionError

from stream_invoker.streams.client import DynamoDbStreamsProvider, error_code, error_detail

logger = logging.getLogger("stream_invoker.tailer.locator")

_NOT_READY_ERROR_CODES = {
    "ResourceNotFoundException",
    "EndpointConnectionError",
}


@dataclass(frozen=True)
class StreamIdentity:
    stream_arn: str
    shard_id: str


class StreamLocator:
    """Resolve exactly one stream and one shard; anything else is unknown.

    Ambiguous or missing topology is an operator configuration problem (or a
    stream that is still being provisioned), so it is reported as ``None`` with
    a warning and never guessed.
    """

    def __init__(self, provider: DynamoDbStreamsProvider) -> None:
        self.provider = provider

    def resolve_stream(self, table_name: str) -> str | None:
        try:
            streams = self.provider.list_streams(table_name)
        except Exception as exc:
            if not _is_not_ready(exc):
                raise
            logger.warning(
                "ListStreams not ready table=%s code=%s detail=%s",
                table_name,
                error_code(exc),
                error_detail(exc),
            )
            return None
        if not streams:
            logger.warning("No DynamoDB Streams found for table=%s", table_name)
            return None
        if len(streams) > 1:
            logger.warning("Found multiple streams on table=%s count=%s", table_name, len(streams))
            return None
        stream_arn = streams[0].get("StreamArn")
        if not stream_arn:
            logger.warning("No ARN on stream for table=%s", table_name)
            return None
        return str(stream_arn)

    def resolve_shard(self, stream_arn: str) -> str | None:
        try:
            shards = self.provider.describe_shards(stream_arn)
        except Exception as exc:
            if not _is_not_ready(exc):
                raise
            logger.warning(
                "DescribeStream not ready stream=%s code=%s detail=%s",
                stream_arn,
                error_code(exc),
                error_detail(exc),
            )
            return None
        if not shards:
            logger.warning("Failed to find shards for stream=%s", stream_arn)
            return None
        if len(shards) > 1:
            logger.warning("Multiple shards found for stream=%s count=%s", stream_arn, len(shards))
            return None
        shard_id = shards[0].get("ShardId")
        if not shard_id:
            logger.warning("No shard ID found on shard for stream=%s", stream_arn)
            return None
        return str(shard_id)

    def resolve(self, table_name: str) -> StreamIdentity | None:
        stream_arn = self.resolve_stream(table_name)
        if not stream_arn:
            return None
        shard_id = self.resolve_shard(stream_arn)
        if not shard_id:
            return None
        return StreamIdentity(stream_arn=stream_arn, shard_id=shard_id)


def _is_not_ready(exc: Exception) -> bool:
    if isinstance(exc, EndpointConnectionError):
        return True
    return error_code(exc) in _NOT_READY_ERROR_CODES
