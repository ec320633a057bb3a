"""habitkeeper FastAPI backend: local API for the timer UI."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from habitkeeper.api import settings, timer
from habitkeeper.config import config
from habitkeeper.services.keeper import HabitKeeper


def create_app(keeper: HabitKeeper | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.keeper = keeper or HabitKeeper.build()
        await app.state.keeper.open()
        yield
        await app.state.keeper.close()

    app = FastAPI(title="habitkeeper", version="0.1.0", lifespan=lifespan)
    app.include_router(settings.router, prefix="/api")
    app.include_router(timer.router, prefix="/api")

    @app.get("/")
    async def health():
        return {"status": "operational", "service": "habitkeeper"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    uvicorn.run("habitkeeper.main:app", host=config.server.host, port=config.server.port)
