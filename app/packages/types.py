"""业务包接口：主应用只通过这里声明的字段装配业务包。"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import Logger
from typing import Any, Callable, Dict, Type

from fastapi import APIRouter


@dataclass(frozen=True)
class AppPackage:
    """业务包对主应用暴露的路由、生命周期钩子与异常处理器。

    ``exception_handlers`` 按异常类型注册，越具体的类型应排在越前面。
    """

    name: str
    api_router: APIRouter
    get_settings: Callable[[], Any]
    setup_logging: Callable[[], None]
    logger: Logger
    on_startup: Callable[[], None]
    create_response: Callable[..., Dict[str, Any]]
    exception_handlers: Dict[Type[Exception], Callable[..., Any]] = field(default_factory=dict)
