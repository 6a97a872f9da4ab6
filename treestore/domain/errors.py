from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    path: str
    message: str


class TreeStoreError(Exception):
    pass


class MalformedDataError(TreeStoreError):
    """Stored bytes exist but cannot be read back as the expected shape."""

    def __init__(self, key: str, issues: list[ValidationIssue]):
        super().__init__(f"malformed_data:{key}")
        self.key = key
        self.issues = issues


class MalformedNodeError(MalformedDataError):
    def __init__(self, object_id: str, issues: list[ValidationIssue]):
        super().__init__(object_id, issues)
        self.object_id = object_id


class MalformedBookmarkError(MalformedDataError):
    def __init__(self, name: str, issues: list[ValidationIssue]):
        super().__init__(name, issues)
        self.name = name


class InvalidIdentifierError(TreeStoreError, ValueError):
    def __init__(self, value: object):
        super().__init__(f"invalid_identifier:{value!r}")
        self.value = value


class CycleDetectedError(TreeStoreError):
    def __init__(self, object_id: str, path: tuple[str, ...]):
        super().__init__(f"cycle_detected:{object_id}")
        self.object_id = object_id
        self.path = path
