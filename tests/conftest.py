import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    # Ensure `import treestore...` works without installing the package.
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture
def objects(tmp_path: Path):
    from treestore.infra.storage import ObjectStore

    return ObjectStore(tmp_path / "objects")


@pytest.fixture
def trees(tmp_path: Path):
    from treestore.config import AppConfig
    from treestore.features.resolution.service import TreeService

    return TreeService.from_config(AppConfig(data_dir=tmp_path, condition_evaluator="literal"))
