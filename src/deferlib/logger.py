#!/usr/bin/env python3
from __future__ import annotations

import bz2
import io
import logging
import logging.handlers
import os
import pathlib
from typing import TYPE_CHECKING

import coloredlogs

if TYPE_CHECKING:
    import queue

MAX_SIZE: int = 10 * 1024 * 1024
ROTATE_COUNT: int = 10

LOG_FORMAT: str = "{name} %(asctime)s %(levelname)s [%(threadName)s %(filename)s:%(lineno)s] %(message)s"


def _log_formatter(name: str) -> logging.Formatter:
    return logging.Formatter(fmt=LOG_FORMAT.format(name=name), datefmt="%Y-%m-%d %H:%M:%S")


class _Bz2Rotator:
    @staticmethod
    def namer(name: str) -> str:
        return name + ".bz2"

    @staticmethod
    def rotator(source: str, dest: str) -> None:
        with pathlib.Path(source).open(mode="rb") as fs, bz2.open(dest, "wb") as fd:
            fd.writelines(fs)
        pathlib.Path(source).unlink()


def init(
    name: str,
    level: int = logging.WARNING,
    log_dir_path: str | pathlib.Path | None = None,
    log_queue: queue.Queue[logging.LogRecord] | None = None,
    is_str_log: bool = False,
) -> io.StringIO | None:
    """ルートロガーを設定する

    サブ処理はワーカースレッドでログを出力するため、フォーマットにスレッド名を含めます。

    Args:
        name: ログに付与する名前 (ファイル名にも使用)
        level: ログレベル
        log_dir_path: 指定した場合、ローテーション付きのファイルにも出力
        log_queue: 指定した場合、QueueHandler でキューにも出力
        is_str_log: True の場合、StringIO に出力してそれを返す

    Returns:
        is_str_log が True の場合は StringIO、それ以外は None
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if os.environ.get("NO_COLORED_LOGS", "false") != "true":
        # NOTE: 二重出力を防ぐため、既存の StreamHandler を削除してから coloredlogs をインストール
        root_logger.handlers = [h for h in root_logger.handlers if not isinstance(h, logging.StreamHandler)]
        coloredlogs.install(fmt=LOG_FORMAT.format(name=name), level=level, reconfigure=True, isatty=None)

    if log_dir_path is not None:
        log_dir_path = pathlib.Path(log_dir_path)
        log_dir_path.mkdir(exist_ok=True, parents=True)

        log_file_path = str(log_dir_path / f"{name}.log")
        logging.info("Log to %s", log_file_path)

        log_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            encoding="utf8",
            maxBytes=MAX_SIZE,
            backupCount=ROTATE_COUNT,
        )
        log_handler.formatter = _log_formatter(name)
        log_handler.namer = _Bz2Rotator.namer
        log_handler.rotator = _Bz2Rotator.rotator  # type: ignore[assignment]

        root_logger.addHandler(log_handler)

    if log_queue is not None:
        root_logger.addHandler(logging.handlers.QueueHandler(log_queue))

    if is_str_log:
        str_io = io.StringIO()
        stream_handler = logging.StreamHandler(str_io)
        stream_handler.formatter = _log_formatter(name)
        root_logger.addHandler(stream_handler)

        return str_io

    return None
