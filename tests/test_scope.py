"""Tests for RecursionScope."""

from __future__ import annotations

import threading

from trackbot.dedupe import IssueFingerprint, RecursionScope

KEY = IssueFingerprint("https://bugzilla.redhat.com", "1234")


class TestRecursionScope:
    def test_add_twice_in_one_scope(self):
        scope = RecursionScope()
        with scope:
            assert scope.add(KEY) is True
            assert scope.add(KEY) is False

    def test_new_scope_after_exit_accepts_key_again(self):
        scope = RecursionScope()
        with scope:
            scope.add(KEY)
        with scope:
            assert scope.add(KEY) is True

    def test_nested_exit_keeps_keys_until_outermost(self):
        scope = RecursionScope()
        scope.enter()
        scope.add(KEY)
        scope.enter()
        scope.exit()
        assert KEY in scope
        assert scope.depth == 1
        scope.exit()
        assert KEY not in scope
        assert scope.depth == 0

    def test_exit_without_enter_is_harmless(self):
        scope = RecursionScope()
        scope.exit()
        assert scope.depth == 0
        with scope:
            assert scope.add(KEY) is True

    def test_exit_runs_on_exception(self):
        scope = RecursionScope()
        try:
            with scope:
                scope.add(KEY)
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert scope.depth == 0
        assert KEY not in scope

    def test_concurrent_add_single_winner(self):
        scope = RecursionScope()
        barrier = threading.Barrier(8)
        results: list[bool] = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            r = scope.add(KEY)
            with lock:
                results.append(r)

        with scope:
            threads = [threading.Thread(target=worker) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        assert results.count(True) == 1
