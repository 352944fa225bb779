#!/usr/bin/env python3
from __future__ import annotations

import concurrent.futures
import logging
from typing import Any

DEFAULT_THREAD_NAME_PREFIX: str = "defer"


def create_executor(
    max_workers: int | None = None, thread_name_prefix: str = DEFAULT_THREAD_NAME_PREFIX
) -> concurrent.futures.ThreadPoolExecutor:
    logging.debug("Create executor (max_workers=%s, prefix=%s)", max_workers, thread_name_prefix)

    return concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix=thread_name_prefix
    )


# NOTE: テスト用 (submit した時点で呼び出し元スレッドで実行する)
class SingleThreadExecutor(concurrent.futures.Executor):
    def submit(  # type: ignore[override]
        self, fn: Any, *args: Any, **kwargs: Any
    ) -> concurrent.futures.Future[Any]:
        future: concurrent.futures.Future[Any] = concurrent.futures.Future()
        try:
            result = fn(*args, **kwargs)
            future.set_result(result)
        except Exception as e:
            future.set_exception(e)
        return future
