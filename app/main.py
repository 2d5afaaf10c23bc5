# app/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import (
    health,
    auth,
    users,
    categories,
    tickets,
    comments,
    dashboard,
)

from app.core.config import settings
from app.core.logging import setup_logging, RequestIdMiddleware

setup_logging(settings.log_level)

app = FastAPI(
    title="Helpdesk",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
)

# ==== Middlewares ====
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)

# ==== API під /api ====
app.include_router(health.router,     prefix="/api",            tags=["health"])
app.include_router(auth.router,       prefix="/api/auth",       tags=["auth"])
app.include_router(users.router,      prefix="/api/users",      tags=["users"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(tickets.router,    prefix="/api/tickets",    tags=["tickets"])
app.include_router(comments.router,   prefix="/api/tickets",    tags=["comments"])
app.include_router(dashboard.router,  prefix="/api/dashboard",  tags=["dashboard"])
