import importlib
import pkgutil

from app.core.logging import get_logger

logger = get_logger(__name__)


def include_routers(app, package_name, package_path):
    # 패키지 내 모듈 중 router를 가진 모듈만 등록 (dependencies 등은 건너뜀)
    for _, module_name, _ in sorted(pkgutil.iter_modules(package_path), key=lambda m: m.name):
        module = importlib.import_module(f"app.{package_name}.{module_name}")
        router = getattr(module, "router", None)
        if router is None:
            continue
        app.include_router(router)
        logger.debug(f"Router registered: app.{package_name}.{module_name}")
