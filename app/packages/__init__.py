"""业务包注册中心：按名称查找可装配到主应用的业务包。"""

from __future__ import annotations

import os
from typing import Dict

from . import portfolio
from .types import AppPackage

DEFAULT_PACKAGE = portfolio.package.name

PACKAGE_REGISTRY: Dict[str, AppPackage] = {
    portfolio.package.name: portfolio.package,
}


def get_active_package() -> AppPackage:
    """根据 ``APP_ACTIVE_PACKAGE`` 环境变量选择业务包，默认 portfolio。"""
    name = os.getenv("APP_ACTIVE_PACKAGE", DEFAULT_PACKAGE)
    if name not in PACKAGE_REGISTRY:
        raise RuntimeError(f"未找到名为 '{name}' 的业务包，可用选项：{', '.join(PACKAGE_REGISTRY)}")
    return PACKAGE_REGISTRY[name]


__all__ = ["PACKAGE_REGISTRY", "get_active_package"]
