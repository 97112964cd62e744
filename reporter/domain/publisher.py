"""Publisher contract.

A publisher receives a bounded batch (at most 20 records, at most 150
values per record) plus the namespace, performs the network call and
raises PublishError on failure. Batch bounds are the flush scheduler's
responsibility, publishers do not re-validate them.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from .records import OutputRecord


class PublishError(Exception):
    def __init__(self, message: str, count: int = 0, namespace: str = ""):
        super().__init__(message)
        self.count = count
        self.namespace = namespace


class Publisher(Protocol):
    def send(self, batch: Sequence[OutputRecord], namespace: str) -> None: ...
