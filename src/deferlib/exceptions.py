#!/usr/bin/env python3
"""遅延実行関連の例外クラス定義"""

from __future__ import annotations


class DeferError(Exception):
    """遅延実行関連エラーの基底クラス"""

    pass


class CountdownExhaustedError(DeferError):
    """カウントダウンの初期値を超えた投入・デクリメント"""

    def __init__(self, count: int) -> None:
        super().__init__(f"countdown already exhausted (initial count: {count})")
        self.count = count
