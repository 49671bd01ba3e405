from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from segskip import __version__
from segskip.logging import configure_logging
from segskip.routers import health, options, segments

app = FastAPI(
    title="segskip API",
    version=__version__,
    docs_url=None,  # Disable Swagger in production
    redoc_url=None,
)

# CORS for player-side clients (restrict in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Lock down for production
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["X-API-Key", "Content-Type"],
)

app.include_router(health.router)
app.include_router(segments.router)
app.include_router(options.router)


@app.on_event("startup")
async def startup():
    configure_logging()
    segments.sponsorblock.cache.start_sweeper()
    segments.dearrow.cache.start_sweeper()


@app.on_event("shutdown")
async def shutdown():
    segments.sponsorblock.cache.stop_sweeper()
    segments.dearrow.cache.stop_sweeper()
    await segments.sponsorblock.aclose()
    await segments.dearrow.aclose()
