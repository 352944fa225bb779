#!/usr/bin/env python3
from __future__ import annotations

import logging
import pathlib
import tempfile
from collections.abc import Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[pathlib.Path, None, None]:
    with tempfile.TemporaryDirectory() as tmp:
        yield pathlib.Path(tmp)


@pytest.fixture
def root_logger(monkeypatch: pytest.MonkeyPatch) -> Generator[logging.Logger, None, None]:
    """logger.init() が追加したハンドラをテスト後に取り除く"""
    monkeypatch.setenv("NO_COLORED_LOGS", "true")

    logger = logging.getLogger()
    handlers = logger.handlers[:]
    level = logger.level

    yield logger

    for handler in logger.handlers[:]:
        # NOTE: pytest 自身のキャプチャ用ハンドラは触らない
        if handler in handlers or type(handler).__module__.startswith("_pytest"):
            continue
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
