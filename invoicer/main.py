from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from invoicer.database.database import sync_engine, Base

# Import middleware
from invoicer.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from invoicer.common.exceptions import register_exception_handlers

# Import routers
from invoicer.modules.auth.router import auth_router
from invoicer.modules.company.router import company_router
from invoicer.modules.notifications.router import notifications_router
from invoicer.modules.clients.router import router as clients_router
from invoicer.modules.projects.router import router as projects_router
from invoicer.modules.invoices.router import router as invoices_router
from invoicer.modules.quotes.router import router as quotes_router
from invoicer.modules.receipts.router import router as receipts_router
from invoicer.modules.dashboard.router import router as dashboard_router
from invoicer.modules.admin.router import router as admin_router

# Import models for table creation
import invoicer.modules.auth.models
import invoicer.modules.admin.models
import invoicer.modules.company.models
import invoicer.modules.notifications.models
import invoicer.modules.clients.models
import invoicer.modules.projects.models
import invoicer.modules.documents.models
import invoicer.modules.invoices.models
import invoicer.modules.quotes.models
import invoicer.modules.receipts.models

from invoicer.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Invoicer API",
    description="Invoicing SaaS API: clients, projects, invoices, quotes and receipts built with FastAPI and PostgreSQL",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

register_exception_handlers(app)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(company_router, prefix="/company", tags=["Company"])
app.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
app.include_router(clients_router)
app.include_router(projects_router)
app.include_router(invoices_router)
app.include_router(quotes_router)
app.include_router(receipts_router)
app.include_router(dashboard_router)
app.include_router(admin_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)

@app.get("/")
async def read_root():
    return {
        "message": "Invoicer API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("Invoicer API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Client delete policy: {settings.CLIENT_DELETE_POLICY}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Invoicer API shutting down...")
