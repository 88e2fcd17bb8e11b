from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError

from stream_invoker.streams.client import (
    DynamoDbStreamsProvider,
    StreamsClientConfig,
    build_streams_provider,
    error_code,
    error_detail,
)


class _FakeClient:
    def __init__(self, responses: dict[str, list[dict[str, Any]]]) -> None:
        self._responses = {key: list(value) for key, value in responses.items()}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _next(self, operation: str, kwargs: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((operation, kwargs))
        return self._responses[operation].pop(0)

    def list_streams(self, **kwargs: Any) -> dict[str, Any]:
        return self._next("list_streams", kwargs)

    def describe_stream(self, **kwargs: Any) -> dict[str, Any]:
        return self._next("describe_stream", kwargs)

    def get_shard_iterator(self, **kwargs: Any) -> dict[str, Any]:
        return self._next("get_shard_iterator", kwargs)

    def get_records(self, **kwargs: Any) -> dict[str, Any]:
        return self._next("get_records", kwargs)


def _provider(client: _FakeClient) -> DynamoDbStreamsProvider:
    return DynamoDbStreamsProvider(
        StreamsClientConfig(region="us-east-1", endpoint_url="http://localhost:4566"),
        client=client,
    )


def test_list_streams_follows_last_evaluated_stream_arn() -> None:
    client = _FakeClient(
        {
            "list_streams": [
                {"Streams": [{"StreamArn": "arn:1"}], "LastEvaluatedStreamArn": "arn:1"},
                {"Streams": [{"StreamArn": "arn:2"}]},
            ]
        }
    )
    streams = _provider(client).list_streams("orders")
    assert [row["StreamArn"] for row in streams] == ["arn:1", "arn:2"]
    assert client.calls[0][1] == {"TableName": "orders"}
    assert client.calls[1][1] == {"TableName": "orders", "ExclusiveStartStreamArn": "arn:1"}


def test_list_streams_without_streams_field_is_empty() -> None:
    client = _FakeClient({"list_streams": [{}]})
    assert _provider(client).list_streams("orders") == []


def test_list_streams_requires_table_name() -> None:
    with pytest.raises(RuntimeError, match="TABLE_NAME_MISSING"):
        _provider(_FakeClient({})).list_streams("")


def test_describe_shards_follows_last_evaluated_shard_id() -> None:
    client = _FakeClient(
        {
            "describe_stream": [
                {"StreamDescription": {"Shards": [{"ShardId": "s-1"}], "LastEvaluatedShardId": "s-1"}},
                {"StreamDescription": {"Shards": [{"ShardId": "s-2"}]}},
            ]
        }
    )
    shards = _provider(client).describe_shards("arn:1")
    assert [row["ShardId"] for row in shards or []] == ["s-1", "s-2"]
    assert client.calls[1][1] == {"StreamArn": "arn:1", "ExclusiveStartShardId": "s-1"}


def test_describe_shards_without_shards_field_is_none() -> None:
    client = _FakeClient({"describe_stream": [{"StreamDescription": {"StreamStatus": "ENABLING"}}]})
    assert _provider(client).describe_shards("arn:1") is None


def test_get_shard_iterator_and_records_pass_through_arguments() -> None:
    client = _FakeClient(
        {
            "get_shard_iterator": [{"ShardIterator": "it-1"}],
            "get_records": [{"Records": [], "NextShardIterator": "it-2"}],
        }
    )
    provider = _provider(client)
    assert provider.get_shard_iterator("arn:1", "s-1")["ShardIterator"] == "it-1"
    provider.get_records("it-1", 5000)
    assert client.calls[0][1] == {"StreamArn": "arn:1", "ShardId": "s-1", "ShardIteratorType": "LATEST"}
    assert client.calls[1][1] == {"ShardIterator": "it-1", "Limit": 1000}


def test_build_streams_provider_uses_environment_fallbacks(monkeypatch) -> None:
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.setenv("AWS_ENDPOINT", "http://localstack:4566")
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "test")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "test")
    provider = build_streams_provider()
    assert provider.config.region == "eu-west-1"
    assert provider.config.endpoint_url == "http://localstack:4566"


def test_error_code_and_detail_normalise_client_errors() -> None:
    exc = ClientError(
        {"Error": {"Code": "ExpiredIteratorException", "Message": "Iterator expired"}},
        "GetRecords",
    )
    assert error_code(exc) == "ExpiredIteratorException"
    assert error_detail(exc) == "Iterator expired"
    assert error_code(ValueError("boom")) == "ValueError"
    assert error_detail(ValueError("boom")) == "boom"
