from fastapi import FastAPI

from treestore.config import AppConfig, load_config
from treestore.features.resolution.service import TreeService
from treestore.features.seed.demo import seed_demo
from treestore.features.trees.api import router as trees_router
from treestore.infra.log import configure_logging
from treestore.web.health import router as health_router
from treestore.web.pages import router as pages_router


def create_app(cfg: AppConfig | None = None) -> FastAPI:
    cfg = cfg or load_config()
    configure_logging(cfg.log_level, cfg.log_format)

    trees = TreeService.from_config(cfg)
    if cfg.seed_demo:
        seed_demo(trees, bookmark=cfg.home_bookmark)

    app = FastAPI(title="treestore", version="0.1.0")
    app.state.cfg = cfg
    app.state.trees = trees
    app.include_router(health_router)
    app.include_router(trees_router)
    app.include_router(pages_router)
    return app
