"""DynamoDB Streams provider adapter."""

from .client import (
    EXPIRED_ITERATOR_CODE,
    ITERATOR_LATEST,
    DynamoDbStreamsProvider,
    StreamsClientConfig,
    build_streams_provider,
    error_code,
    error_detail,
)

__all__ = [
    "EXPIRED_ITERATOR_CODE",
    "ITERATOR_LATEST",
    "DynamoDbStreamsProvider",
    "StreamsClientConfig",
    "build_streams_provider",
    "error_code",
    "error_detail",
]
