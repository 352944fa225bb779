#!/usr/bin/env python3
# ruff: noqa: S101
"""
deferlib.scoped モジュールのユニットテスト
"""
from __future__ import annotations

import pytest


class TestScopedDefer:
    """ScopedDefer クラスのテスト"""

    def test_runs_once_on_scope_exit(self):
        """スコープ終了時に一度だけ実行する"""
        from deferlib.scoped import ScopedDefer

        calls = []

        with ScopedDefer(lambda: calls.append(1)):
            assert calls == []

        assert calls == [1]

    def test_not_run_at_construction(self):
        """生成時には実行しない"""
        from deferlib.scoped import ScopedDefer

        calls = []
        handle = ScopedDefer(lambda: calls.append(1))

        assert calls == []
        assert handle.pending

    def test_second_exit_is_noop(self):
        """二度目のスコープ終了では実行しない"""
        from deferlib.scoped import ScopedDefer

        calls = []
        handle = ScopedDefer(lambda: calls.append(1))

        with handle:
            pass
        with handle:
            pass

        assert calls == [1]
        assert not handle.pending

    def test_runs_on_early_return(self):
        """早期 return でも実行する"""
        from deferlib.scoped import ScopedDefer

        calls = []

        def func():
            with ScopedDefer(calls.append, "deferred"):
                calls.append("body")
                return "result"

        assert func() == "result"
        assert calls == ["body", "deferred"]

    def test_runs_on_exception(self):
        """例外で抜けても実行し、例外はそのまま伝播する"""
        from deferlib.scoped import ScopedDefer

        calls = []

        with pytest.raises(ValueError, match="body error"), ScopedDefer(lambda: calls.append(1)):
            raise ValueError("body error")

        assert calls == [1]

    def test_action_exception_propagates(self):
        """action の例外は呼び出し元に伝播する"""
        from deferlib.scoped import ScopedDefer

        def fail():
            raise RuntimeError("action error")

        handle = ScopedDefer(fail)

        with pytest.raises(RuntimeError, match="action error"), handle:
            pass

        # 失敗しても再実行はしない
        assert not handle.pending
        assert handle.run() is False

    def test_nested_scopes_run_innermost_first(self):
        """ネストしたスコープは内側から実行する"""
        from deferlib.scoped import ScopedDefer

        order = []

        with ScopedDefer(order.append, "outer"):
            with ScopedDefer(order.append, "inner"):
                pass
            order.append("between")

        assert order == ["inner", "between", "outer"]

    def test_binds_arguments(self):
        """引数を束縛できる"""
        from deferlib.scoped import ScopedDefer

        result = {}

        with ScopedDefer(result.update, value=42):
            pass

        assert result == {"value": 42}


class TestRun:
    """ScopedDefer.run のテスト"""

    def test_manual_run_consumes_action(self):
        """手動で実行するとスコープ終了時には実行しない"""
        from deferlib.scoped import ScopedDefer

        calls = []

        with ScopedDefer(lambda: calls.append(1)) as handle:
            assert handle.run() is True
            assert calls == [1]

        assert calls == [1]

    def test_run_twice_is_noop(self):
        """二度目の run は何もしない"""
        from deferlib.scoped import ScopedDefer

        calls = []
        handle = ScopedDefer(lambda: calls.append(1))

        assert handle.run() is True
        assert handle.run() is False
        assert calls == [1]

    def test_concurrent_run_executes_once(self):
        """複数スレッドから run しても一度だけ実行する"""
        import concurrent.futures
        import threading

        from deferlib.scoped import ScopedDefer

        calls = []
        barrier = threading.Barrier(8)

        handle = ScopedDefer(lambda: calls.append(1))

        def trigger():
            barrier.wait()
            return handle.run()

        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: trigger(), range(8)))

        assert calls == [1]
        assert results.count(True) == 1


class TestCancel:
    """ScopedDefer.cancel のテスト"""

    def test_cancel_skips_action(self):
        """cancel すると実行しない"""
        from deferlib.scoped import ScopedDefer

        calls = []

        with ScopedDefer(lambda: calls.append(1)) as handle:
            assert handle.cancel() is True

        assert calls == []

    def test_cancel_after_run(self):
        """実行後の cancel は False を返す"""
        from deferlib.scoped import ScopedDefer

        handle = ScopedDefer(lambda: None)
        handle.run()

        assert handle.cancel() is False


class TestDefer:
    """defer 関数のテスト"""

    def test_returns_scoped_defer(self):
        """ScopedDefer を返す"""
        from deferlib.scoped import ScopedDefer, defer

        assert isinstance(defer(lambda: None), ScopedDefer)

    def test_defer_sets_value(self):
        """スコープ終了後に値が設定されている"""
        from deferlib.scoped import defer

        value = {"v": 0}

        with defer(value.__setitem__, "v", 1):
            assert value["v"] == 0

        assert value["v"] == 1
