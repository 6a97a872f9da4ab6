from pathlib import Path

import structlog

from treestore.domain.errors import (
    InvalidIdentifierError,
    MalformedBookmarkError,
    ValidationIssue,
)
from treestore.infra.hashing import check_algorithm, fingerprint, is_identifier
from treestore.infra.storage import write_atomic

logger = structlog.get_logger()


class BookmarkStore:
    """Mutable name -> object id bindings, one file per hashed name."""

    def __init__(self, root: Path, algorithm: str = "sha1") -> None:
        check_algorithm(algorithm)
        self._root = root
        self._algorithm = algorithm
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        return self._root / fingerprint(name.encode("utf-8"), self._algorithm)

    def set(self, name: str, object_id: str) -> None:
        if not is_identifier(object_id, self._algorithm):
            raise InvalidIdentifierError(object_id)
        write_atomic(self._path(name), object_id.encode("ascii"))
        logger.info("bookmark_set", name=name, object_id=object_id)

    def get(self, name: str) -> str | None:
        try:
            raw = self._path(name).read_bytes()
        except FileNotFoundError:
            return None

        value = raw.decode("utf-8", errors="replace").strip()
        if not is_identifier(value, self._algorithm):
            raise MalformedBookmarkError(
                name,
                [
                    ValidationIssue(
                        code="invalid_identifier",
                        path="",
                        message=f"bookmark does not hold a {self._algorithm} identifier",
                    )
                ],
            )
        return value
