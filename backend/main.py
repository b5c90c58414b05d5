# backend/main.py
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from config import settings
from database import get_db, init_db
from services.catalog import CatalogView
from utils.errors import AuthModalRequired, NavigationRedirect, StorefrontError
from utils.navigation import NOT_FOUND_BODY, ROUTE_TABLE

# Routers
from routes.auth import router as auth_router
from routes.menu import router as menu_router
from routes.cart import router as cart_router
from routes.address import router as address_router
from routes.payment import router as payment_router
from routes.orders import router as orders_router
from routes.admin import router as admin_router
from routes.dashboard import router as dashboard_router
from routes.realtime import router as realtime_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialization
init_db()

app = FastAPI(title="Storefront API", version="1.0.0")

# Uploads - make sure the directory exists
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# CORS: local dev server plus the configured frontend
origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- error mapping ----

@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "kind": exc.kind})


# Guarded route without a session: the client opens the sign-in overlay in place
@app.exception_handler(AuthModalRequired)
async def auth_modal_handler(request: Request, exc: AuthModalRequired):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": "Authentication required", "auth_modal": exc.modal_state},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(NavigationRedirect)
async def navigation_redirect_handler(request: Request, exc: NavigationRedirect):
    return JSONResponse(
        status_code=status.HTTP_303_SEE_OTHER,
        content={"detail": "Redirect", "redirect_to": exc.location, "state": exc.state},
        headers={"Location": exc.location},
    )


# Unknown routes get the not-found page; 404s raised by handlers keep their detail
@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=NOT_FOUND_BODY)
    return await http_exception_handler(request, exc)


# Router registration
app.include_router(auth_router)
app.include_router(menu_router)
app.include_router(cart_router)
app.include_router(address_router)
app.include_router(payment_router)
app.include_router(orders_router)
app.include_router(admin_router)
app.include_router(dashboard_router)
app.include_router(realtime_router)


# Landing page: menu categories and where everything lives
@app.get("/")
def read_root(db: Session = Depends(get_db)):
    view = CatalogView(db)
    view.fetch()
    return {"message": "Storefront API is running", "categories": view.categories, "routes": ROUTE_TABLE}
