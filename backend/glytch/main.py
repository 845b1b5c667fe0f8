import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from glytch.config import settings
from glytch.core.errors import GlytchError, glytch_error_handler
from glytch.core.redis import close_redis, get_redis
from glytch.routers import auth, github, verify

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await get_redis()
    yield
    await close_redis()

app = FastAPI(title="GLYTCH Identity API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(GlytchError, glytch_error_handler)

app.include_router(auth.router)
app.include_router(verify.router)
app.include_router(github.router)

@app.get("/health")
async def health():
    return {"status": "ok"}
