#!/usr/bin/env python3
"""スコープ終了時に一度だけ処理を実行するモジュール

使用例:
    with deferlib.scoped.defer(conn.close):
        ...  # ブロックを抜けると (return・例外を含む) conn.close() が呼ばれる
"""

from __future__ import annotations

import functools
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from types import TracebackType


class ScopedDefer:
    """スコープ終了時に action を一度だけ実行する

    with ブロックの終了 (正常終了・早期 return・例外) で action を実行します。
    run() で先に実行した場合、スコープ終了時には何もしません。
    """

    def __init__(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        if args or kwargs:
            action = functools.partial(action, *args, **kwargs)
        self._action: Callable[[], Any] | None = action
        self._lock = threading.Lock()

    def __enter__(self) -> ScopedDefer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        # NOTE: action の例外はそのまま呼び出し元に伝播させる
        self.run()

    def _take(self) -> Callable[[], Any] | None:
        with self._lock:
            action, self._action = self._action, None
        return action

    def run(self) -> bool:
        """action を取り出して実行する

        Returns:
            この呼び出しで実行した場合 True、実行済みの場合 False
        """
        action = self._take()
        if action is None:
            return False

        action()
        return True

    def cancel(self) -> bool:
        """action を実行せずに破棄する

        Returns:
            破棄した場合 True
        """
        return self._take() is not None

    @property
    def pending(self) -> bool:
        """action が未実行かを返す"""
        return self._action is not None


def defer(action: Callable[..., Any], *args: Any, **kwargs: Any) -> ScopedDefer:
    return ScopedDefer(action, *args, **kwargs)
