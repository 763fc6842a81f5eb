from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quotely.server.api import dashboard, directory, quotes, search, share, system, templates
from quotely.server.deps import build_store
from quotely.server.settings import settings
from quotely.services.quote_store import QuoteStore


def create_app(store: Optional[QuoteStore] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            print(f"Laddar offertdata ({settings.storage_backend})...")
            app.state.store = build_store(settings)
        yield
        print("Avslutar appen...")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.store = store

    # CORS – så att frontenden (Vite på 5173) kan prata med backend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(system.router)
    app.include_router(quotes.router)        # /quotes...
    app.include_router(templates.router)     # /templates...
    app.include_router(directory.router)     # /projects, /domains, /contacts
    app.include_router(share.router)         # /client/{token}, offentlig via delningslänk
    app.include_router(search.router)
    app.include_router(dashboard.router)
    return app


app = create_app()
