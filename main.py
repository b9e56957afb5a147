from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from db import Base, engine
from matching.config import settings
from matching import models  # noqa: F401  registers the match tables
from matching.routes import router as matches_router

logging.basicConfig(level=settings.LOG_LEVEL)
logging.info("App starting with DATABASE_URL")

app = FastAPI(title="Program Matching API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)

app.include_router(matches_router)


@app.get("/", tags=["meta"])
def root():
    return {"service": "matching", "docs": "/docs"}
