# backend/main.py
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from database import init_db
from pathlib import Path
from dotenv import load_dotenv
import logging
import os

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from config import settings
from utils.order_processing import OrderProcessingError

# Routers
from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.logs import router as logs_router
from routes.orders import router as orders_router
from routes.products import router as products_router
from routes.shop import router as shop_router
from routes.newsletter import router as newsletter_router

logger = logging.getLogger(__name__)

# Initialization
init_db()
logger.info("Database ready at %s", settings.DATABASE_URL.split("@")[-1])

app = FastAPI(title="Storefront API", version="1.0.0")

# Uploaded product images
Path("static/uploads").mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory="static/uploads"), name="uploads")

# CORS Configuration
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


# Checkout failures are reported as {"error", "kind", "product_id"} with the status of their kind
@app.exception_handler(OrderProcessingError)
async def order_processing_error_handler(request: Request, exc: OrderProcessingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Malformed checkout bodies use the same error shape as the order transaction
CHECKOUT_PATHS = ("/process-order", "/orders/validate")


@app.exception_handler(RequestValidationError)
async def checkout_body_error_handler(request: Request, exc: RequestValidationError):
    if request.url.path not in CHECKOUT_PATHS:
        return await request_validation_exception_handler(request, exc)
    first = exc.errors()[0]
    field = ".".join(str(p) for p in first["loc"] if p != "body")
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {first['msg']}", "kind": "ValidationError", "product_id": None},
    )


# Router registration
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(logs_router)
app.include_router(orders_router)
app.include_router(products_router)
app.include_router(shop_router)
app.include_router(newsletter_router)

@app.get("/")
def read_root():
    return {"message": "Storefront API is running"}
