import asyncio
from typing import Any, Awaitable, Callable, List

from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

Read = Callable[[AsyncSession], Awaitable[Any]]


def parse_id(raw: Any) -> int | None:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text.isdigit():
        return None
    value = int(text)
    return value if value > 0 else None


async def gather_reads(session_factory: async_sessionmaker, *reads: Read) -> List[Any]:
    """Run independent reads concurrently, one session each.

    Results come back in the order the reads were given, not the order they
    finished in.
    """

    async def run(read: Read) -> Any:
        async with session_factory() as db:
            return await read(db)

    return list(await asyncio.gather(*(run(read) for read in reads)))


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)
