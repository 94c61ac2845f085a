import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from civicpulse.config import settings
from civicpulse.database import init_db
from civicpulse.routers import auth, contact, health, notifications
from civicpulse.services.accounts import account_store

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="CivicPulse Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(auth.legacy_router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(contact.router, prefix="/api")


@app.on_event("startup")
def startup() -> None:
    init_db()
    account_store.ensure_seed_accounts()


@app.get("/")
def root():
    return {"status": "Backend running"}
