"""Tests for call-scoped cache-key hints."""

from __future__ import annotations

import asyncio
import threading

import pytest

from apicache.cache.hints import cache_hint, clear_hint, get_hint, sanitize_hint, set_hint


class TestSanitize:
    def test_parts_joined_with_slash(self) -> None:
        assert sanitize_hint("orders", "2024") == "orders/2024"

    def test_unsafe_characters_replaced(self) -> None:
        assert sanitize_hint("my orders?", "a/b", "ü") == "my_orders_/a_b/_"

    def test_allowed_characters_kept(self) -> None:
        assert sanitize_hint("A-z_0.9") == "A-z_0.9"

    def test_blank_parts_dropped(self) -> None:
        assert sanitize_hint("orders", "  ", None, "", "2024") == "orders/2024"

    @pytest.mark.parametrize("parts", [(), ("",), ("   ",), (None,)])
    def test_all_blank_is_none(self, parts: tuple) -> None:
        assert sanitize_hint(*parts) is None

    @pytest.mark.parametrize("part, expected", [(".", "_"), ("..", "__"), ("...", "___")])
    def test_dot_only_parts_neutralised(self, part: str, expected: str) -> None:
        assert sanitize_hint("a", part, "b") == f"a/{expected}/b"

    def test_non_string_parts_are_stringified(self) -> None:
        assert sanitize_hint("sets", 10236) == "sets/10236"


class TestAmbientHint:
    def test_default_is_none(self) -> None:
        assert get_hint() is None

    def test_set_and_clear(self) -> None:
        set_hint("orders", "2024")
        assert get_hint() == "orders/2024"
        clear_hint()
        assert get_hint() is None

    def test_clear_with_token_restores_previous(self) -> None:
        outer = set_hint("outer")
        inner = set_hint("inner")
        assert get_hint() == "inner"
        clear_hint(inner)
        assert get_hint() == "outer"
        clear_hint(outer)
        assert get_hint() is None

    def test_context_manager_restores_on_exit(self) -> None:
        with cache_hint("orders", "2024") as hint:
            assert hint == "orders/2024"
            assert get_hint() == "orders/2024"
        assert get_hint() is None

    def test_context_manager_restores_on_error(self) -> None:
        with pytest.raises(RuntimeError):
            with cache_hint("boom"):
                raise RuntimeError("fail")
        assert get_hint() is None

    def test_nested_context_managers(self) -> None:
        with cache_hint("outer"):
            with cache_hint("inner"):
                assert get_hint() == "inner"
            assert get_hint() == "outer"


class TestIsolation:
    def test_threads_do_not_see_each_other(self) -> None:
        barrier = threading.Barrier(4)
        seen: dict[int, str | None] = {}

        def worker(n: int) -> None:
            with cache_hint("worker", str(n)):
                barrier.wait()
                seen[n] = get_hint()

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert seen == {n: f"worker/{n}" for n in range(4)}

    def test_asyncio_tasks_do_not_see_each_other(self) -> None:
        async def worker(n: int) -> str | None:
            with cache_hint("task", str(n)):
                await asyncio.sleep(0.01)
                return get_hint()

        async def main() -> list[str | None]:
            return await asyncio.gather(*(worker(n) for n in range(5)))

        assert asyncio.run(main()) == [f"task/{n}" for n in range(5)]
