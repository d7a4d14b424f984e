"""KeyedMutex のユニットテスト"""

import asyncio

from tagflags.mutex import KeyedMutex


async def test_hold_serializes_same_key() -> None:
    mutex = KeyedMutex()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with mutex.hold("flag-1"):
            order.append(f"{name}-start")
            await asyncio.sleep(0)
            order.append(f"{name}-end")

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a-start", "a-end", "b-start", "b-end"]


async def test_different_keys_do_not_block() -> None:
    mutex = KeyedMutex()
    async with mutex.hold("flag-1"):
        async with mutex.hold("flag-2"):
            assert mutex.is_locked("flag-1")
            assert mutex.is_locked("flag-2")


async def test_lock_released_and_dropped() -> None:
    mutex = KeyedMutex()
    async with mutex.hold("flag-1"):
        pass
    assert mutex.is_locked("flag-1") is False
    assert mutex._locks == {}
