#!/usr/bin/env python3
"""カウントダウン型の遅延実行モジュール

指定した数のサブ処理がすべて完了した時点で、最終処理を一度だけ実行します。
サブ処理は Executor 上で並行に実行され、完了順序は問いません。

使用例:
    with concurrent.futures.ThreadPoolExecutor() as executor:
        handle = CountdownDefer(2, lambda: logging.info("all done"), executor=executor)
        handle.submit(task1)
        handle.submit(task2)

        handle.wait()
"""

from __future__ import annotations

import concurrent.futures
import functools
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import deferlib.thread_util
from deferlib.exceptions import CountdownExhaustedError

if TYPE_CHECKING:
    from types import TracebackType


class CountdownDefer:
    """カウントダウン型の遅延実行クラス

    count 個のサブ処理の完了後に final_action を一度だけ実行します。
    カウンタのデクリメントと 0 判定は単一のロック内で行うため、
    final_action を実行するのは 1 → 0 の遷移を観測した 1 つの完了処理だけです。

    count が 0 の場合、final_action はコンストラクタ内で即座に実行されます。

    Attributes:
        count: 初期カウント
    """

    def __init__(
        self,
        count: int,
        final_action: Callable[[], Any],
        executor: concurrent.futures.Executor | None = None,
        executor_options: dict[str, Any] | None = None,
    ) -> None:
        """初期化する

        Args:
            count: final_action の実行までに完了を待つサブ処理の数
            final_action: 最終処理
            executor: サブ処理を実行する Executor。None の場合は専用のスレッドプールを生成し、
                最終処理の実行後に終了させます
            executor_options: 専用のスレッドプールの生成時に create_executor() へ渡す引数。
                config.executor_options() の戻り値をそのまま渡せます。executor を渡した場合は使用しません

        Raises:
            ValueError: count が負または整数でない場合
            TypeError: final_action が呼び出し可能でない場合
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(f"count must be a non-negative integer: {count!r}")
        if not callable(final_action):
            raise TypeError(f"final_action must be callable: {final_action!r}")

        self.count = count

        self._final_action: Callable[[], Any] | None = final_action
        self._counter = count
        self._submitted = 0
        self._lock = threading.Lock()
        self._finished = threading.Event()

        self._owns_executor = executor is None
        self._executor: concurrent.futures.Executor | None = executor
        self._executor_options: dict[str, Any] = dict(executor_options or {})

        if count == 0:
            logging.debug("Countdown started at zero, run final action immediately")
            self._run_final(self._take_final())

    def __enter__(self) -> CountdownDefer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def submit(
        self, sub_action: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> concurrent.futures.Future[Any]:
        """サブ処理を Executor に投入する

        完了を待たずに返ります。戻り値の Future は無視してもかまいません。

        Raises:
            CountdownExhaustedError: 既に count 個のサブ処理を受け付けている場合
        """
        if args or kwargs:
            sub_action = functools.partial(sub_action, *args, **kwargs)

        with self._lock:
            if self._submitted >= self.count:
                raise CountdownExhaustedError(self.count)
            self._submitted += 1
            submitted = self._submitted

            if self._executor is None:
                self._executor = deferlib.thread_util.create_executor(**self._executor_options)
            executor = self._executor

        try:
            future = executor.submit(self._execute, sub_action)
        except Exception:
            # NOTE: 投入できなかった分は受付数に含めない
            with self._lock:
                self._submitted -= 1
            raise

        logging.debug("Submit sub action %d/%d", submitted, self.count)

        return future

    def _execute(self, sub_action: Callable[[], Any]) -> Any:
        try:
            return sub_action()
        except Exception as e:
            logging.warning("Sub action failed: %s", e)
            raise
        finally:
            self._complete_one()

    def _complete_one(self) -> None:
        with self._lock:
            if self._counter == 0:
                logging.error("Countdown decremented below zero (initial count: %d)", self.count)
                raise CountdownExhaustedError(self.count)

            self._counter -= 1
            final_action = self._take_final() if self._counter == 0 else None

        if final_action is not None:
            self._run_final(final_action)

    def _take_final(self) -> Callable[[], Any] | None:
        final_action, self._final_action = self._final_action, None
        return final_action

    def _run_final(self, final_action: Callable[[], Any] | None) -> None:
        if final_action is None:
            return

        logging.debug("Run final action")
        try:
            final_action()
        except Exception:
            logging.exception("Final action failed")
            raise
        finally:
            if self._owns_executor:
                self.close(wait=False)
            self._finished.set()

    def wait(self, timeout: float | None = None) -> bool:
        """最終処理の実行完了を待機する

        Args:
            timeout: タイムアウト秒数（None で無制限）

        Returns:
            最終処理が実行された場合 True、タイムアウトの場合 False
        """
        return self._finished.wait(timeout=timeout)

    @property
    def finished(self) -> bool:
        """最終処理が実行済みかを返す"""
        return self._finished.is_set()

    def done(self) -> bool:
        """最終処理が実行済みかを返す"""
        return self._finished.is_set()

    @property
    def remaining(self) -> int:
        """完了を待っているサブ処理の数を返す"""
        with self._lock:
            return self._counter

    def close(self, wait: bool = True) -> None:
        """専用のスレッドプールを終了する

        コンストラクタで Executor を渡した場合は何もしません。
        """
        if not self._owns_executor or self._executor is None:
            return

        logging.debug("Shutdown owned executor (wait=%s)", wait)
        self._executor.shutdown(wait=wait)


def countdown_defer(
    count: int,
    final_action: Callable[[], Any],
    executor: concurrent.futures.Executor | None = None,
    executor_options: dict[str, Any] | None = None,
) -> CountdownDefer:
    return CountdownDefer(count, final_action, executor=executor, executor_options=executor_options)


def exec_before_defer(
    handle: CountdownDefer, action: Callable[..., Any], *args: Any, **kwargs: Any
) -> concurrent.futures.Future[Any]:
    return handle.submit(action, *args, **kwargs)
