import logging

from fastapi import FastAPI

from .db import Base, engine
from .settings import settings
from .routers import health, personas
from .routers import auth
from .routers import profiles
from .routers import translate
from .routers import history
from .routers import stats


def configure_logging() -> None:
	logging.basicConfig(
		level=getattr(logging, settings.log_level.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)


def create_app() -> FastAPI:
	app = FastAPI(title="GenMode API")
	app.include_router(health.router)
	app.include_router(personas.router)
	app.include_router(auth.router)
	app.include_router(profiles.router)
	app.include_router(translate.router)
	app.include_router(history.router)
	app.include_router(stats.router)

	@app.on_event("startup")
	async def startup_event():
		configure_logging()
		# Initialize DB schema
		Base.metadata.create_all(bind=engine)

	return app


app = create_app()
