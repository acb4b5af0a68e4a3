import logging

from fastapi import FastAPI
from slowapi.middleware import SlowAPIMiddleware

from .config import LOG_LEVEL
from .database import Base, engine
from .error_handlers import register_exception_handlers
from .rate_limit import limiter
from .routers import bookings, host, locations, users

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# -----------------------------------------
# Create DB tables
# -----------------------------------------
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Luggage Storage Marketplace API",
    version="0.1.0",
    description="Hosts list luggage storage locations; users find them nearby and book them by the hour.",
)

# -----------------------------------------
# Rate limiting: 100/minute per client by default,
# tighter limits on register/login (see routers.users)
# -----------------------------------------
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)


# -----------------------------------------
# Routers (normal + versioned /api/v1)
# -----------------------------------------
for router in (users.router, locations.router, bookings.router, host.router):
    app.include_router(router)
    app.include_router(router, prefix="/api/v1")


# -----------------------------------------
# Health check endpoint
# -----------------------------------------
@app.get("/health", tags=["health"])
def health_check():
    return {"status": "ok"}
