import asyncio
import atexit
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Any


# ============================================
#  FILE I/O EXECUTOR
# ============================================

_io_executor = ThreadPoolExecutor(
    max_workers=2, thread_name_prefix='file_io')

atexit.register(
    lambda: _io_executor.shutdown(wait=False))


async def run_in_io(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        _io_executor, func, *args)


# ============================================
#  UTILS
# ============================================

def safe_get(data: Any, *keys: str,
             default=None) -> Any:
    """Walk nested response dicts; ``default`` on any gap."""
    for key in keys:
        if not isinstance(data, dict) or key not in data:
            return default
        data = data[key]
    return data


def jitter_delay(attempt: int,
                 base: float = 1.0,
                 cap: float = 30.0) -> float:
    return random.uniform(
        0, min(base * (2 ** attempt), cap))


def truncate_header(value: str,
                    length: int = 40) -> str:
    """Truncate header value for safe logging."""
    if not value:
        return '<empty>'
    if len(value) <= length:
        return value
    return f'{value[:length]}...'
