import inspect
from typing import Any


async def resolve(value: Any) -> Any:
    """Await `value` if it is awaitable; plain values pass through."""
    if inspect.isawaitable(value):
        return await value
    return value
