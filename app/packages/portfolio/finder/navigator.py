"""Finder 导航状态机。

状态以不可变快照 :class:`FinderState` 暴露，每次变更后依次通知订阅者。
重叠的目录请求通过单调递增的请求序号区分：响应返回时只有序号仍是最新的那一个会被应用，
较早发出的响应一律丢弃。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Tuple

from app.packages.portfolio.core.constants import ROOT_PATH, SORT_FIELDS, SORT_ORDERS
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.finder.adapter import FinderAdapterError, FinderItem
from app.packages.portfolio.finder.sorting import sort_items
from app.packages.portfolio.utils.path_utils import normalize_path

VIEW_MODES = ("icon", "list")
DEFAULT_ERROR = "Failed to load directory"

Listener = Callable[["FinderState"], None]


@dataclass(frozen=True)
class FinderState:
    current_path: str = ROOT_PATH
    history: Tuple[str, ...] = (ROOT_PATH,)
    history_index: int = 0
    items: Tuple[FinderItem, ...] = ()
    is_loading: bool = True
    error: Optional[str] = None
    selected_items: frozenset = field(default_factory=frozenset)
    last_selected_item: Optional[str] = None
    sort_by: str = "name"
    sort_order: str = "asc"
    view_mode: str = "list"
    sidebar_visible: bool = True

    @property
    def can_go_back(self) -> bool:
        return self.history_index > 0

    @property
    def can_go_forward(self) -> bool:
        return self.history_index < len(self.history) - 1


class FinderNavigator:
    """可显式构造的 Finder 状态容器；是否全局单例由组合根决定。"""

    def __init__(self, adapter, *, sort_by: str = "name", sort_order: str = "asc", view_mode: str = "list"):
        _check_sort(sort_by, sort_order)
        _check_view_mode(view_mode)
        self._adapter = adapter
        self._listeners: List[Listener] = []
        self._state = FinderState(sort_by=sort_by, sort_order=sort_order, view_mode=view_mode)
        self._request_seq = 0

    # ------------------------------------------------------------------
    # 订阅
    # ------------------------------------------------------------------
    def get_state(self) -> FinderState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    @property
    def can_go_back(self) -> bool:
        return self._state.can_go_back

    @property
    def can_go_forward(self) -> bool:
        return self._state.can_go_forward

    # ------------------------------------------------------------------
    # 目录加载
    # ------------------------------------------------------------------
    async def _fetch(self, path: str) -> Tuple[bool, Optional[Tuple[FinderItem, ...]], Optional[str]]:
        """返回 (是否仍为最新请求, 条目, 错误信息)。过期的响应不修改任何状态。"""
        self._request_seq += 1
        seq = self._request_seq
        self._set_state(is_loading=True, error=None)
        state = self._state
        try:
            items = await self._adapter.get_items(path, state.sort_by, state.sort_order)
        except FinderAdapterError as exc:
            if seq != self._request_seq:
                return False, None, None
            logger.warning("finder.fetch_failed path=%s code=%s error=%s", path, exc.error_code, exc.message)
            return True, None, exc.message or DEFAULT_ERROR
        except Exception as exc:  # noqa: BLE001
            if seq != self._request_seq:
                return False, None, None
            logger.exception("finder.fetch_error path=%s", path)
            return True, None, str(exc) or DEFAULT_ERROR

        if seq != self._request_seq:
            logger.debug("finder.stale_response path=%s seq=%s latest=%s", path, seq, self._request_seq)
            return False, None, None
        return True, tuple(sort_items(items, state.sort_by, state.sort_order)), None

    async def initialize(self) -> None:
        """首次加载根目录（或构造时的当前目录）。"""
        current, items, error = await self._fetch(self._state.current_path)
        if not current:
            return
        if error is not None:
            self._set_state(is_loading=False, error=error)
            return
        self._set_state(items=items, is_loading=False)

    async def navigate_to(self, path: str) -> None:
        """进入新目录；成功后截断前进历史并追加，失败时保留原目录与条目。"""
        target = normalize_path(path)
        if target == self._state.current_path and not self._state.is_loading:
            return

        current, items, error = await self._fetch(target)
        if not current:
            return
        if error is not None:
            self._set_state(is_loading=False, error=error)
            return

        state = self._state
        history = state.history
        index = state.history_index
        if target != state.current_path:
            history = state.history[: state.history_index + 1] + (target,)
            index = len(history) - 1
        self._set_state(
            current_path=target,
            items=items,
            history=history,
            history_index=index,
            is_loading=False,
            selected_items=frozenset(),
            last_selected_item=None,
        )

    async def _traverse(self, index: int) -> None:
        """移动历史指针并重新加载，不修改历史列表本身。"""
        path = self._state.history[index]
        current, items, error = await self._fetch(path)
        if not current:
            return
        if error is not None:
            self._set_state(is_loading=False, error=error)
            return
        self._set_state(
            current_path=path,
            history_index=index,
            items=items,
            is_loading=False,
            selected_items=frozenset(),
            last_selected_item=None,
        )

    async def go_back(self) -> bool:
        if not self._state.can_go_back:
            return False
        await self._traverse(self._state.history_index - 1)
        return True

    async def go_forward(self) -> bool:
        if not self._state.can_go_forward:
            return False
        await self._traverse(self._state.history_index + 1)
        return True

    async def reset_to_root(self) -> None:
        self._set_state(
            current_path=ROOT_PATH,
            history=(ROOT_PATH,),
            history_index=0,
            selected_items=frozenset(),
            last_selected_item=None,
            error=None,
        )
        current, items, error = await self._fetch(ROOT_PATH)
        if not current:
            return
        if error is not None:
            self._set_state(is_loading=False, error=error)
            return
        self._set_state(items=items, is_loading=False)

    async def refresh(self) -> None:
        """重新加载当前目录，保留历史与选择中仍存在的条目。"""
        current, items, error = await self._fetch(self._state.current_path)
        if not current:
            return
        if error is not None:
            self._set_state(is_loading=False, error=error)
            return
        remaining = {item.id for item in items}
        selected = frozenset(i for i in self._state.selected_items if i in remaining)
        last = self._state.last_selected_item if self._state.last_selected_item in selected else None
        self._set_state(items=items, is_loading=False, selected_items=selected, last_selected_item=last)

    async def set_sort(self, sort_by: str, sort_order: Optional[str] = None) -> None:
        sort_order = sort_order or self._state.sort_order
        _check_sort(sort_by, sort_order)
        self._set_state(sort_by=sort_by, sort_order=sort_order)
        await self.refresh()

    # ------------------------------------------------------------------
    # 纯状态操作
    # ------------------------------------------------------------------
    def select_item(self, item_id: str, multi_select: bool = False) -> None:
        if multi_select:
            selection = set(self._state.selected_items)
            if item_id in selection:
                selection.remove(item_id)
            else:
                selection.add(item_id)
        else:
            selection = {item_id}
        self._set_state(selected_items=frozenset(selection), last_selected_item=item_id)

    def clear_selection(self) -> None:
        self._set_state(selected_items=frozenset(), last_selected_item=None)

    def set_view_mode(self, mode: str) -> None:
        _check_view_mode(mode)
        self._set_state(view_mode=mode)

    def toggle_sidebar(self) -> None:
        self._set_state(sidebar_visible=not self._state.sidebar_visible)


def _check_sort(sort_by: str, sort_order: str) -> None:
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"unsupported sort field: {sort_by}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"unsupported sort order: {sort_order}")


def _check_view_mode(mode: str) -> None:
    if mode not in VIEW_MODES:
        raise ValueError(f"unsupported view mode: {mode}")
