# backend/main.py
import logging
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

load_dotenv()

from config import settings
from database import engine, get_db, init_db
from services.exceptions import StockManagerError

# Router imports
from routes.auth import router as auth_router
from routes.users import router as users_router
from routes.products import router as products_router
from routes.stock import router as stock_router
from routes.transactions import router as transactions_router
from routes.dashboard import router as dashboard_router
from routes.bom import router as bom_router
from routes.attachments import router as attachments_router
from routes.exports import router as exports_router
from routes.webhooks import router as webhooks_router
from routes.logs import router as logs_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialization
init_db()

app = FastAPI(title="Scent Stock Manager API", version="5.0.0")

# Uploads - make sure the directory exists
upload_path = Path(settings.UPLOAD_DIR)
upload_path.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(upload_path)), name="uploads")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://localhost:3000",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    max_age=600,
)


# Domain errors become {"success": false, "error": ...} with the matching status
@app.exception_handler(StockManagerError)
async def stock_manager_error_handler(request: Request, exc: StockManagerError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Router registration
API_PREFIX = "/api"
for router in (
    auth_router, users_router, products_router, stock_router, transactions_router,
    dashboard_router, bom_router, attachments_router, exports_router, webhooks_router,
    logs_router,
):
    app.include_router(router, prefix=API_PREFIX)


@app.get("/api/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(status_code=503, content={"status": "error", "error": str(e)})
    return {
        "status": "ok",
        "message": "Service active",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": engine.url.database,
    }


@app.get("/")
def read_root():
    return {"message": "Scent Stock Manager API"}
