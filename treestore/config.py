import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from treestore.infra.hashing import check_algorithm

EvaluatorName = Literal["never", "literal"]


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    hash_algorithm: str = "sha1"
    log_level: str = "INFO"
    log_format: str = "console"
    seed_demo: bool = False
    condition_evaluator: EvaluatorName = "never"
    max_depth: int = 256
    max_nodes: int = 100_000
    home_bookmark: str = "home"

    @property
    def objects_dir(self) -> Path:
        return self.data_dir / "objects"

    @property
    def bookmarks_dir(self) -> Path:
        return self.data_dir / "bookmarks"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AppConfig:
    evaluator = os.environ.get("TREESTORE_CONDITION_EVALUATOR", "never")
    if evaluator not in ("never", "literal"):
        raise ValueError(f"Unknown condition evaluator: {evaluator}")

    algorithm = os.environ.get("TREESTORE_HASH_ALGORITHM", "sha1")
    check_algorithm(algorithm)

    return AppConfig(
        data_dir=Path(os.environ.get("TREESTORE_DATA_DIR", "data")),
        hash_algorithm=algorithm,
        log_level=os.environ.get("TREESTORE_LOG_LEVEL", "INFO").upper(),
        log_format=os.environ.get("TREESTORE_LOG_FORMAT", "console"),
        seed_demo=_env_bool("TREESTORE_SEED_DEMO", False),
        condition_evaluator=evaluator,  # type: ignore[arg-type]
        max_depth=int(os.environ.get("TREESTORE_MAX_DEPTH", "256")),
        max_nodes=int(os.environ.get("TREESTORE_MAX_NODES", "100000")),
        home_bookmark=os.environ.get("TREESTORE_HOME_BOOKMARK", "home"),
    )
