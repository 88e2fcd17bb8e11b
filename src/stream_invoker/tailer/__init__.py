"""Stream tailer: locate, poll and dispatch DynamoDB Stream batches."""

from .config import InvokeConfig, TailerConfig, TailerConfigError, load_tailer_config
from .cursor import CursorManager, CursorMintError
from .dispatcher import BatchSink, DispatchCancelled, DispatchError, EventStager, SamLocalDispatcher
from .fetcher import BatchFetcher, FetchExpired, FetchFailed, FetchOk, ProtocolViolationError
from .locator import StreamIdentity, StreamLocator
from .worker import StreamTailerWorker, TailerState

__all__ = [
    "BatchFetcher",
    "BatchSink",
    "CursorManager",
    "CursorMintError",
    "DispatchCancelled",
    "DispatchError",
    "EventStager",
    "FetchExpired",
    "FetchFailed",
    "FetchOk",
    "InvokeConfig",
    "ProtocolViolationError",
    "SamLocalDispatcher",
    "StreamIdentity",
    "StreamLocator",
    "StreamTailerWorker",
    "TailerConfig",
    "TailerConfigError",
    "TailerState",
    "load_tailer_config",
]
