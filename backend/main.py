# backend/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from config import settings
from database import init_db
from exceptions import LedgerError

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Routers
from routes.products import router as products_router
from routes.batches import router as batches_router
from routes.allocations import router as allocations_router
from routes.goods_receipts import router as goods_receipts_router
from routes.reports import router as reports_router
from routes.stock import router as stock_router

# Initialisation
init_db()

app = FastAPI(title="Inventory Ledger API", version="1.0.0")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError):
    level = logging.INFO if exc.code < 500 else logging.ERROR
    logger.log(level, "%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.code, content=jsonable_encoder(exc.to_dict()))


# Router registration
app.include_router(products_router)
app.include_router(batches_router)
app.include_router(allocations_router)
app.include_router(goods_receipts_router)
app.include_router(reports_router)

# Stock movements and adjustments
app.include_router(stock_router, prefix="/stock")

@app.get("/")
def read_root():
    return {"message": "Inventory Ledger API is running"}
