import httpx
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

import models  # noqa: F401
from database import Base, get_sessionmaker, make_async_engine
from main import app


class Store:
    """Direct access to the test database, bypassing the controllers."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def add(self, *objs):
        async with self.session_factory() as db:
            db.add_all(objs)
            await db.commit()
        return objs[0] if len(objs) == 1 else objs

    async def get(self, model, obj_id, *options):
        async with self.session_factory() as db:
            stmt = select(model).where(model.id == obj_id)
            if options:
                stmt = stmt.options(*options)
            return (await db.execute(stmt)).scalar_one_or_none()

    async def count(self, model) -> int:
        async with self.session_factory() as db:
            return await db.scalar(select(func.count()).select_from(model))

    async def all(self, model, *options):
        async with self.session_factory() as db:
            stmt = select(model).order_by(model.id)
            if options:
                stmt = stmt.options(*options)
            return list((await db.execute(stmt)).scalars().all())


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = make_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    return Store(session_factory)


@pytest_asyncio.fixture
async def client(session_factory):
    app.dependency_overrides[get_sessionmaker] = lambda: session_factory
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        follow_redirects=False,
    ) as c:
        yield c
    app.dependency_overrides.clear()
