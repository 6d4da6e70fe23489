from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.routes import account, admin, cart, catalog, checkout, orders
from storefront.config import configure_logging, settings
from storefront.db.session import db_healthcheck

openapi_tags = [
    {"name": "Health", "description": "Service and dependency health checks."},
    {"name": "Catalog", "description": "Product listing, filters, product detail, reviews and collections."},
    {"name": "Cart", "description": "Cart of the signed-in user or guest session."},
    {"name": "Checkout", "description": "Order placement and confirmation."},
    {"name": "Account", "description": "Profile, order history, addresses and favorites."},
    {"name": "Newsletter", "description": "Newsletter signup."},
    {"name": "Admin", "description": "Back-office management (admins only)."},
    {"name": "Orders", "description": "Order resource operations (admins only)."},
]

configure_logging()

app = FastAPI(
    title="Storefront API",
    description="Storefront and admin back-office service (catalog, cart, checkout, orders, admin console).",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RuntimeError)
def runtime_error_handler(request: Request, exc: RuntimeError):
    """Read actions raise RuntimeError with a user-facing message after logging the cause."""
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.get("/", tags=["Health"], summary="Service health check")
def health_check():
    """Basic health check for the backend service (no external dependencies)."""
    return {"message": "Healthy"}


@app.get("/health/db", tags=["Health"], summary="Database health check")
def health_db_check():
    """
    Check database connectivity.

    Returns a JSON payload indicating whether the database is reachable.
    """
    ok = db_healthcheck()
    return {"database": "ok" if ok else "unreachable", "ok": ok}


for module in (catalog, cart, checkout, account, orders, admin):
    app.include_router(module.router)
