from __future__ import annotations

from dataclasses import dataclass

from ...errors import StoreError


@dataclass(slots=True)
class DdbError(StoreError):
    """Base error for DynamoDB operations.

    Every fetch/update failure surfaces as one of these; nothing in this
    package retries them.
    """


@dataclass(slots=True)
class DdbConflict(DdbError):
    pass


@dataclass(slots=True)
class DdbValidation(DdbError):
    pass


@dataclass(slots=True)
class DdbThrottled(DdbError):
    pass


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    pass


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass
