# backend/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from services.errors import StoreError, ValidationError, Unauthorized

# Routers
from routes.auth import router as auth_router
from routes.shop import router as shop_router
from routes.products import router as products_router
from routes.favorites import router as favorites_router
from routes.orders import router as orders_router
from routes.logs import router as logs_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Initialization
init_db()

app = FastAPI(title="Storefront API", version="1.0.0")

# CORS: local dev server plus the deployed frontend
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Service errors become JSON responses; field errors are returned per field
@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    body = {"detail": exc.message}
    headers = None
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


# Router registration
app.include_router(auth_router)
app.include_router(shop_router)
app.include_router(products_router)
app.include_router(favorites_router)
app.include_router(orders_router)
app.include_router(logs_router)

@app.get("/")
def read_root():
    return {"message": "Storefront API is running"}
