"""DynamoDB Streams read adapter (boto3)."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Any

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger("stream_invoker.streams")

ITERATOR_LATEST = "LATEST"
EXPIRED_ITERATOR_CODE = "ExpiredIteratorException"
MAX_RECORDS_PER_CALL = 1000


@dataclass(frozen=True)
class StreamsClientConfig:
    region: str | None
    endpoint_url: str | None


class DynamoDbStreamsProvider:
    def __init__(self, config: StreamsClientConfig, *, client: Any | None = None) -> None:
        self.config = config
        self._client = client or boto3.client(
            "dynamodbstreams",
            region_name=config.region,
            endpoint_url=config.endpoint_url,
        )

    def list_streams(self, table_name: str) -> list[dict[str, Any]]:
        if not table_name:
            raise RuntimeError("TABLE_NAME_MISSING")
        streams: list[dict[str, Any]] = []
        args: dict[str, Any] = {"TableName": table_name}
        while True:
            response = self._client.list_streams(**args)
            streams.extend(response.get("Streams") or [])
            last_arn = response.get("LastEvaluatedStreamArn")
            if not last_arn:
                return streams
            args["ExclusiveStartStreamArn"] = last_arn

    def describe_shards(self, stream_arn: str) -> list[dict[str, Any]] | None:
        if not stream_arn:
            raise RuntimeError("STREAM_ARN_MISSING")
        shards: list[dict[str, Any]] = []
        args: dict[str, Any] = {"StreamArn": stream_arn}
        while True:
            response = self._client.describe_stream(**args)
            description = response.get("StreamDescription") or {}
            page = description.get("Shards")
            if page is None:
                return shards or None
            shards.extend(page)
            last_shard = description.get("LastEvaluatedShardId")
            if not last_shard:
                return shards
            args["ExclusiveStartShardId"] = last_shard

    def get_shard_iterator(
        self,
        stream_arn: str,
        shard_id: str,
        iterator_type: str = ITERATOR_LATEST,
    ) -> dict[str, Any]:
        return self._client.get_shard_iterator(
            StreamArn=stream_arn,
            ShardId=shard_id,
            ShardIteratorType=iterator_type,
        )

    def get_records(self, shard_iterator: str, limit: int) -> dict[str, Any]:
        return self._client.get_records(
            ShardIterator=shard_iterator,
            Limit=min(MAX_RECORDS_PER_CALL, max(1, int(limit))),
        )


def build_streams_provider(
    *,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> DynamoDbStreamsProvider:
    region = region or os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
    endpoint = endpoint_url or os.getenv("AWS_ENDPOINT") or os.getenv("AWS_ENDPOINT_URL")
    logger.info("DynamoDB Streams client region=%s endpoint=%s", region, endpoint or "<aws>")
    return DynamoDbStreamsProvider(StreamsClientConfig(region=region, endpoint_url=endpoint))


def error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code") or "")
    return exc.__class__.__name__


def error_detail(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Message") or "")[:256]
    return str(exc)[:256]
