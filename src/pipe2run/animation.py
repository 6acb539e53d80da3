import asyncio
import threading
import time
import sys
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


def _clear(text: str) -> None:
    sys.stdout.write("\r" + " " * (len(text) + 2) + "\r")
    sys.stdout.flush()


async def run(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    text: str = "Выполнение",
    interval: float = 0.1,
    enabled: bool = True,
    **kwargs: Any,
) -> T:
    """
    Запускает асинхронную функцию func и крутит спиннер в ОТДЕЛЬНОМ потоке,
    пока функция не завершится.

    При enabled=False (stdout не терминал, тесты) просто ждёт func.
    """
    if not enabled:
        return await func(*args, **kwargs)

    spinner_chars = "|/-\\"
    stop_event = threading.Event()
    started = time.monotonic()

    def spinner():
        i = 0
        while not stop_event.is_set():
            frame = spinner_chars[i % len(spinner_chars)]
            elapsed = time.monotonic() - started
            sys.stdout.write(f"\r{text} {frame} {elapsed:5.1f}s")
            sys.stdout.flush()
            i += 1
            time.sleep(interval)

    thread = threading.Thread(target=spinner, daemon=True)
    thread.start()

    try:
        return await func(*args, **kwargs)
    finally:
        stop_event.set()
        await asyncio.to_thread(thread.join)
        # +8 символов на таймер
        _clear(text + " " * 8)
