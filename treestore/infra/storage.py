import os
import tempfile
from pathlib import Path

import structlog

from treestore.domain.errors import InvalidIdentifierError
from treestore.domain.nodes import Node, node_to_wire
from treestore.domain.validation import parse_node_json
from treestore.infra.hashing import (
    canonical_json_dumps,
    check_algorithm,
    fingerprint,
    is_identifier,
)

logger = structlog.get_logger()


def write_atomic(path: Path, data: bytes) -> None:
    """Write `data` to `path` so readers see either nothing or the full content.

    The bytes are fsync'ed to a temp file in the target directory and then
    renamed over `path`.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def encode_node(node: Node) -> bytes:
    return canonical_json_dumps(node_to_wire(node)).encode("utf-8")


class ObjectStore:
    """Write-once blobs keyed by the fingerprint of their bytes."""

    def __init__(self, root: Path, algorithm: str = "sha1") -> None:
        check_algorithm(algorithm)
        self._root = root
        self._algorithm = algorithm
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def _path(self, object_id: str) -> Path:
        if not is_identifier(object_id, self._algorithm):
            raise InvalidIdentifierError(object_id)
        return self._root / object_id

    def put(self, data: bytes) -> str:
        object_id = fingerprint(data, self._algorithm)
        path = self._root / object_id
        if path.exists():
            logger.debug("object_exists", object_id=object_id)
            return object_id
        write_atomic(path, data)
        logger.info("object_written", object_id=object_id, size=len(data))
        return object_id

    def get(self, object_id: str) -> bytes | None:
        path = self._path(object_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def exists(self, object_id: str) -> bool:
        return self._path(object_id).is_file()

    def put_json(self, node: Node) -> str:
        return self.put(encode_node(node))

    def get_json(self, object_id: str) -> Node | None:
        data = self.get(object_id)
        if data is None:
            return None
        return parse_node_json(data, object_id=object_id)
