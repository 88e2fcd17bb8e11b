"""Shard iterator minting (LATEST positioning only)."""

from __future__ import annotations

import logging

from stream_invoker.streams.client import ITERATOR_LATEST, DynamoDbStreamsProvider

from .locator import StreamIdentity

logger = logging.getLogger("stream_invoker.tailer.cursor")


class CursorMintError(RuntimeError):
    pass


class CursorManager:
    def __init__(self, provider: DynamoDbStreamsProvider) -> None:
        self.provider = provider

    def mint_initial(self, identity: StreamIdentity) -> str:
        return self._mint(identity)

    def remint(self, identity: StreamIdentity) -> str:
        logger.info(
            "Iterator expired, minting new LATEST iterator stream=%s shard=%s",
            identity.stream_arn,
            identity.shard_id,
            extra={"transition": True},
        )
        return self._mint(identity)

    def _mint(self, identity: StreamIdentity) -> str:
        response = self.provider.get_shard_iterator(
            identity.stream_arn,
            identity.shard_id,
            ITERATOR_LATEST,
        )
        cursor = response.get("ShardIterator")
        if not cursor:
            raise CursorMintError(
                f"SHARD_ITERATOR_MISSING:stream={identity.stream_arn}:shard={identity.shard_id}"
            )
        return str(cursor)
