"""
Top-level package for the DynamoDB stream invoker.

The runtime worker lives under `stream_invoker.tailer`; the boto3 adapter for
the DynamoDB Streams API lives under `stream_invoker.streams`.
"""

__all__: list[str] = []
