"""
FastAPI Application Entry Point

Cocktail Menu - guests scan a QR code, order from the menu, and staff get the
order on WhatsApp. Admins manage the menu and orders from /admin.

Endpoints:
    - GET  /                                 Landing page with the QR code
    - GET  /qr.png                           QR code pointing at /menu
    - GET  /menu                             Menu with the order form
    - POST /order                            Place an order
    - GET  /order/success                    Order confirmation
    - GET  /cocktail/{id}                    Cocktail detail
    - GET  /admin/login, POST /admin/login   Admin login
    - POST /admin/logout                     Admin logout
    - GET  /admin                            Dashboard
    - POST /admin/cocktails                  Create cocktail
    - POST /admin/cocktails/{id}/update      Update cocktail
    - POST /admin/cocktails/{id}/delete      Delete cocktail (and its orders)
    - POST /admin/orders/{id}/delete         Delete order
    - GET  /health                           System health check

Run:
    uvicorn cocktail_menu.main:app --port 3000
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from cocktail_menu.core.config import DEFAULT_ADMIN_PASSWORD, Settings, get_settings, setup_logging
from cocktail_menu.core.security import (
    AdminLoginRequired,
    current_session,
    get_session_store,
    password_matches,
    require_admin,
)
from cocktail_menu.core.sessions import SESSION_COOKIE_NAME, SessionStore
from cocktail_menu.database import Database
from cocktail_menu.schemas import CocktailForm, parse_id
from cocktail_menu.services import (
    ActionResult,
    CatalogService,
    ImageStorage,
    OrderingService,
    Outcome,
)
from cocktail_menu.services.notifications import build_dispatcher, is_whatsapp_link
from cocktail_menu.services.qr import render_qr_png

logger = logging.getLogger(__name__)

# Template configuration
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

LOGIN_PATH = "/admin/login"
DASHBOARD_PATH = "/admin"
MENU_PATH = "/menu"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def render(request: Request, name: str, context: Optional[dict[str, Any]] = None, status_code: int = 200) -> HTMLResponse:
    settings: Settings = request.app.state.settings
    return templates.TemplateResponse(
        request,
        name,
        {"app_name": settings.app_name, **(context or {})},
        status_code=status_code,
    )


def redirect(path: str, params: Optional[dict[str, Any]] = None) -> RedirectResponse:
    """303 redirect, so POSTs are followed by a GET."""
    url = f"{path}?{urlencode(params)}" if params else path
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def base_url(request: Request) -> str:
    settings: Settings = request.app.state.settings
    return settings.public_base_url or str(request.base_url).rstrip("/")


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_ordering(request: Request) -> OrderingService:
    return request.app.state.ordering


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


async def render_dashboard_error(request: Request, catalog: CatalogService, result: ActionResult) -> HTMLResponse:
    """Re-render the dashboard with the lists still populated."""
    view = await catalog.dashboard()
    view.error = result.message
    view.edit_cocktail = result.edit_cocktail
    return render(request, "admin_dashboard.html", {"view": view}, status_code=status.HTTP_400_BAD_REQUEST)


async def respond_to_change(request: Request, catalog: CatalogService, result: ActionResult) -> Response:
    if result.ok:
        return redirect(DASHBOARD_PATH, {"success": result.message})
    if result.outcome == Outcome.VALIDATION_ERROR:
        return await render_dashboard_error(request, catalog, result)
    return redirect(DASHBOARD_PATH, {"error": result.message})


# =============================================================================
# GUEST ENDPOINTS
# =============================================================================

public_router = APIRouter()


@public_router.get("/", response_class=HTMLResponse, tags=["Menu"])
async def home(request: Request, settings: Settings = Depends(get_settings_dep)) -> HTMLResponse:
    """Landing page with the printable QR code."""
    return render(request, "home.html", {
        "menu_url": f"{base_url(request)}{MENU_PATH}",
        "whatsapp_configured": settings.whatsapp_configured,
    })


@public_router.get("/qr.png", tags=["Menu"])
async def qr_code(request: Request) -> Response:
    png = await asyncio.to_thread(render_qr_png, f"{base_url(request)}{MENU_PATH}")
    return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-store"})


@public_router.get("/menu", response_class=HTMLResponse, tags=["Menu"])
async def menu(
    request: Request,
    cocktail_id: Optional[str] = Query(None),
    order_error: Optional[str] = Query(None),
    order_success: Optional[str] = Query(None),
    ordering: OrderingService = Depends(get_ordering),
    settings: Settings = Depends(get_settings_dep),
) -> HTMLResponse:
    return render(request, "menu.html", {
        "cocktails": await ordering.list_menu(),
        "selected_id": parse_id(cocktail_id),
        "order_error": order_error or None,
        "order_success": order_success or None,
        "whatsapp_configured": settings.whatsapp_configured,
    })


@public_router.post("/order", tags=["Orders"])
async def place_order(
    customer_name: str = Form(""),
    cocktail_id: str = Form(""),
    note: str = Form(""),
    ordering: OrderingService = Depends(get_ordering),
) -> RedirectResponse:
    placement = await ordering.place_order(customer_name, cocktail_id, note)

    if placement.outcome != Outcome.SUCCESS:
        chosen = placement.cocktail_id if placement.cocktail_id is not None else ""
        return redirect(MENU_PATH, {"order_error": placement.error, "cocktail_id": chosen})

    params: dict[str, Any] = {"order_id": placement.order_id}
    if placement.dispatch and placement.dispatch.whatsapp_url:
        params["whatsapp_url"] = placement.dispatch.whatsapp_url
        if placement.dispatch.fallback:
            params["fallback"] = "1"
    return redirect("/order/success", params)


@public_router.get("/order/success", response_class=HTMLResponse, tags=["Orders"])
async def order_success(
    request: Request,
    order_id: Optional[str] = Query(None),
    whatsapp_url: str = Query(""),
    fallback: str = Query(""),
    ordering: OrderingService = Depends(get_ordering),
) -> Response:
    order = await ordering.get_order(order_id)
    if order is None:
        return redirect(MENU_PATH)

    whatsapp_url = whatsapp_url.strip()
    return render(request, "order_success.html", {
        "order": order,
        "whatsapp_url": whatsapp_url if is_whatsapp_link(whatsapp_url) else "",
        "fallback": fallback == "1",
    })


@public_router.get("/cocktail/{cocktail_id}", response_class=HTMLResponse, tags=["Menu"])
async def cocktail_detail(
    request: Request,
    cocktail_id: str,
    ordering: OrderingService = Depends(get_ordering),
) -> HTMLResponse:
    cocktail = await ordering.get_cocktail(cocktail_id)
    if cocktail is None:
        raise HTTPException(status_code=404, detail="Cocktail not found")
    return render(request, "cocktail.html", {"cocktail": cocktail})


@public_router.get("/health", tags=["Health"])
async def health_check(request: Request) -> dict[str, Any]:
    """Verify the database answers."""
    db: Database = request.app.state.db

    db_status = "healthy"
    try:
        await db.query_one("SELECT 1 AS ok")
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    return {
        "status": "operational" if db_status == "healthy" else "degraded",
        "database": db_status,
        "whatsapp": "configured" if request.app.state.settings.whatsapp_configured else "not configured",
        "timestamp": datetime.now().isoformat(),
    }


# =============================================================================
# ADMIN ENDPOINTS
# =============================================================================

admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@admin_router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request) -> Response:
    session = current_session(request)
    if session is not None and session.is_admin:
        return redirect(DASHBOARD_PATH)
    return render(request, "admin_login.html", {"error": None})


@admin_router.post("/login")
async def login(
    request: Request,
    password: str = Form(""),
    settings: Settings = Depends(get_settings_dep),
    sessions: SessionStore = Depends(get_session_store),
) -> Response:
    if not password_matches(password, settings.admin_password):
        logger.warning(f"Failed admin login from {request.client.host if request.client else 'unknown'}")
        return render(
            request,
            "admin_login.html",
            {"error": "Incorrect password."},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    # Never reuse a token issued before authentication
    sessions.destroy(sessions.unsign(request.cookies.get(SESSION_COOKIE_NAME)))
    sessions.purge_expired()
    token = sessions.create({"is_admin": True})
    logger.info("Admin logged in")

    response = redirect(DASHBOARD_PATH)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        sessions.sign(token),
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return response


@admin_router.post("/logout")
async def logout(
    request: Request,
    sessions: SessionStore = Depends(get_session_store),
) -> RedirectResponse:
    sessions.destroy(sessions.unsign(request.cookies.get(SESSION_COOKIE_NAME)))
    response = redirect(LOGIN_PATH)
    response.delete_cookie(SESSION_COOKIE_NAME, httponly=True, samesite="lax")
    return response


@admin_router.get("", response_class=HTMLResponse, dependencies=[Depends(require_admin)])
async def dashboard(
    request: Request,
    edit_id: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    success: Optional[str] = Query(None),
    catalog: CatalogService = Depends(get_catalog),
) -> HTMLResponse:
    view = await catalog.dashboard(edit_id=edit_id, error=error, success=success)
    return render(request, "admin_dashboard.html", {"view": view})


@admin_router.post("/cocktails", dependencies=[Depends(require_admin)])
async def create_cocktail(
    request: Request,
    name: str = Form(""),
    ingredients: str = Form(""),
    instructions: str = Form(""),
    strength: str = Form(""),
    glass_type: str = Form(""),
    garnish: str = Form(""),
    tags: str = Form(""),
    image: Optional[UploadFile] = File(None),
    catalog: CatalogService = Depends(get_catalog),
) -> Response:
    form = CocktailForm(
        name=name,
        ingredients=ingredients,
        instructions=instructions,
        strength=strength,
        glass_type=glass_type,
        garnish=garnish,
        tags=tags,
    )
    result = await catalog.create_cocktail(form, image)
    return await respond_to_change(request, catalog, result)


@admin_router.post("/cocktails/{cocktail_id}/update", dependencies=[Depends(require_admin)])
async def update_cocktail(
    request: Request,
    cocktail_id: str,
    name: str = Form(""),
    ingredients: str = Form(""),
    instructions: str = Form(""),
    strength: str = Form(""),
    glass_type: str = Form(""),
    garnish: str = Form(""),
    tags: str = Form(""),
    image: Optional[UploadFile] = File(None),
    catalog: CatalogService = Depends(get_catalog),
) -> Response:
    form = CocktailForm(
        name=name,
        ingredients=ingredients,
        instructions=instructions,
        strength=strength,
        glass_type=glass_type,
        garnish=garnish,
        tags=tags,
    )
    result = await catalog.update_cocktail(cocktail_id, form, image)
    return await respond_to_change(request, catalog, result)


@admin_router.post("/cocktails/{cocktail_id}/delete", dependencies=[Depends(require_admin)])
async def delete_cocktail(
    request: Request,
    cocktail_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> Response:
    result = await catalog.delete_cocktail(cocktail_id)
    return await respond_to_change(request, catalog, result)


@admin_router.post("/orders/{order_id}/delete", dependencies=[Depends(require_admin)])
async def delete_order(
    request: Request,
    order_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> Response:
    result = await catalog.delete_order(order_id)
    return await respond_to_change(request, catalog, result)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def admin_login_required_handler(request: Request, exc: AdminLoginRequired) -> RedirectResponse:
    return redirect(LOGIN_PATH)


async def not_found_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return render(request, "not_found.html", status_code=status.HTTP_404_NOT_FOUND)
    return await http_exception_handler(request, exc)


async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    message = str(exc) or "Internal server error"
    if request.url.path.startswith("/admin"):
        return render(
            request,
            "admin_login.html",
            {"error": message},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return PlainTextResponse(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(settings: Optional[Settings] = None, messaging_client: Optional[Any] = None) -> FastAPI:
    """
    Build the application and its services from one settings object.

    Args:
        settings: Configuration (cached environment settings when omitted)
        messaging_client: Twilio-compatible client to use instead of a real one
    """
    settings = settings or get_settings()
    setup_logging(settings)

    db = Database(settings.database_url_resolved, echo=settings.database_echo)
    images = ImageStorage(settings.upload_dir, settings.max_upload_bytes)
    dispatcher = build_dispatcher(settings, client=messaging_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        # Startup
        logger.info("=" * 60)
        logger.info(f"🍸 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Database: {settings.database_url_resolved}")
        logger.info(f"   Uploads: {images.upload_dir}")
        logger.info(f"   Twilio: {'enabled' if settings.twilio_enabled else 'disabled'}")
        logger.info(f"   wa.me links: {'enabled' if settings.whatsapp_number else 'disabled'}")
        logger.info("=" * 60)

        if settings.admin_password == DEFAULT_ADMIN_PASSWORD:
            logger.warning("⚠️ ADMIN_PASSWORD is the default, set it before going live")

        images.ensure_directory()
        await db.init()
        logger.info("✅ Application ready!")

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        await dispatcher.aclose()
        await db.dispose()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description="QR cocktail menu with WhatsApp order relay and an admin dashboard.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )

    app.state.settings = settings
    app.state.db = db
    app.state.images = images
    app.state.dispatcher = dispatcher
    app.state.sessions = SessionStore(settings.session_secret, settings.session_ttl_seconds)
    app.state.ordering = OrderingService(db, dispatcher)
    app.state.catalog = CatalogService(db, images, require_instructions=settings.require_instructions)

    # Directory is created at startup
    app.mount("/uploads", StaticFiles(directory=images.upload_dir, check_dir=False), name="uploads")
    app.include_router(public_router)
    app.include_router(admin_router)

    app.add_exception_handler(AdminLoginRequired, admin_login_required_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.port)


if __name__ == "__main__":
    run()
