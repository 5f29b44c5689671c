"""UI page routes and HTMX partial endpoints.

Every protected page runs the route guard, then mounts a fresh view
controller on the browser's session context. Partials read whatever the
mounted controller currently holds; a partial whose controller is no
longer mounted answers 286 so HTMX stops polling it.
"""

from functools import partial
from pathlib import Path
from typing import Any, TypeVar

import markdown
import nh3
from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from markupsafe import Markup

from ecocampus.ai.report import generate_energy_report
from ecocampus.auth.guard import (
    HOME_PATH,
    LOGIN_PATH,
    ROUTE_ROLES,
    GuardDecision,
    evaluate_route,
    landing_path,
    nav_for,
)
from ecocampus.auth.provider import AuthError
from ecocampus.auth.session import DemoCredential
from ecocampus.config import Settings
from ecocampus.records.models import UserRole
from ecocampus.sessions import SessionContext
from ecocampus.store.client import StoreClient
from ecocampus.store.mock import student_chart_data
from ecocampus.views.controller import (
    AlertsController,
    DashboardController,
    InternetController,
    ManagementController,
    ReportController,
    SensorFeedController,
    ViewController,
    signal_health,
)
from ecocampus.views.forms import FORMS, EntityKind

_template_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(_template_dir))
templates.env.globals["signal_health"] = signal_health


def render_markdown(text: str) -> Markup:
    """Render report Markdown to HTML, stripping anything but formatting tags."""
    html = markdown.markdown(text, extensions=["sane_lists"])
    return Markup(nh3.clean(html))


templates.env.filters["markdown"] = render_markdown

router = APIRouter()

V = TypeVar("V", bound=ViewController)

# How long a page waits for a stored remote session before showing the loading page
SESSION_RESTORE_WAIT = 2.0
# HTMX stops polling when a response carries this status
STOP_POLLING = 286

SIGNUP_DONE = (
    "Account created! Please check your email for confirmation, "
    "or try signing in if confirmation is disabled."
)


def _ctx(request: Request) -> SessionContext:
    return request.state.session


def _cfg(request: Request) -> Settings:
    return request.app.state.cfg


def _store(request: Request) -> StoreClient:
    return request.app.state.store


def _demo_accounts(request: Request) -> list[DemoCredential]:
    if not _cfg(request).is_development:
        return []
    return request.app.state.sessions.demo_credentials


def _render(request: Request, name: str, **context: Any) -> HTMLResponse:
    ctx = _ctx(request)
    user = ctx.auth.user
    context.update(
        user=user,
        nav=nav_for(user),
        path=request.url.path,
        loading=ctx.auth.loading,
    )
    return templates.TemplateResponse(request, name, context)


async def _guard(request: Request, path: str) -> Response | None:
    """Apply the route guard for ``path``; None means the page may render."""
    ctx = _ctx(request)
    ready = await ctx.ready(SESSION_RESTORE_WAIT)
    decision = evaluate_route(not ready, ctx.auth.user, ROUTE_ROLES[path])
    if decision == GuardDecision.loading:
        return _render(request, "loading.html")
    if decision == GuardDecision.redirect_login:
        return RedirectResponse(LOGIN_PATH, status_code=303)
    if decision == GuardDecision.redirect_home:
        return RedirectResponse(HOME_PATH, status_code=303)
    return None


def _mounted(request: Request, cls: type[V], path: str) -> V | None:
    """The mounted ``cls`` controller, if the user may still see ``path``."""
    ctx = _ctx(request)
    decision = evaluate_route(ctx.auth.loading, ctx.auth.user, ROUTE_ROLES[path])
    if decision != GuardDecision.render:
        return None
    return ctx.current(cls)


def _gone(path: str) -> Response:
    """Send the browser back to a page whose controller is no longer mounted."""
    return Response(status_code=200, headers={"HX-Redirect": path})


# --- Public pages ---


@router.get("/", response_class=HTMLResponse)
async def home(request: Request) -> HTMLResponse:
    await _ctx(request).unmount()
    return _render(request, "home.html")


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, mode: str = "login") -> Response:
    ctx = _ctx(request)
    if await ctx.ready(SESSION_RESTORE_WAIT) and ctx.auth.user is not None:
        return RedirectResponse(landing_path(ctx.auth.user), status_code=303)
    await ctx.unmount()
    return _render(
        request,
        "login.html",
        mode="signup" if mode == "signup" else "login",
        demo_accounts=_demo_accounts(request),
        roles=UserRole,
    )


@router.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
) -> Response:
    ctx = _ctx(request)
    try:
        user = await ctx.auth.login(email.strip(), password)
    except AuthError as e:
        return _render(
            request,
            "login.html",
            mode="login",
            email=email,
            error=e.message or "Authentication failed",
            demo_accounts=_demo_accounts(request),
            roles=UserRole,
        )
    return RedirectResponse(landing_path(user), status_code=303)


@router.post("/login/demo/{index}", response_class=HTMLResponse)
async def demo_login(request: Request, index: int) -> Response:
    accounts = _demo_accounts(request)
    if not 0 <= index < len(accounts):
        return RedirectResponse(LOGIN_PATH, status_code=303)
    account = accounts[index]
    try:
        user = await _ctx(request).auth.login(account.email, account.password)
    except AuthError:
        return _render(
            request,
            "login.html",
            mode="login",
            error="Could not access demo account. Please sign up manually.",
            demo_accounts=accounts,
            roles=UserRole,
        )
    return RedirectResponse(landing_path(user), status_code=303)


@router.post("/signup", response_class=HTMLResponse)
async def signup_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    role: str = Form(UserRole.ADMIN.value),
) -> HTMLResponse:
    context: dict[str, Any] = {"demo_accounts": _demo_accounts(request), "roles": UserRole}
    if role not in UserRole.__members__:
        return _render(
            request, "login.html", mode="signup", email=email, error="Unknown role", **context
        )
    try:
        await _ctx(request).auth.sign_up(email.strip(), password, UserRole(role))
    except AuthError as e:
        return _render(
            request,
            "login.html",
            mode="signup",
            email=email,
            error=e.message or "Authentication failed",
            **context,
        )
    return _render(request, "login.html", mode="login", email=email, info=SIGNUP_DONE, **context)


@router.post("/logout")
async def logout(request: Request) -> Response:
    ctx = _ctx(request)
    await ctx.unmount()
    await ctx.auth.logout()
    return RedirectResponse(HOME_PATH, status_code=303)


# --- Dashboard ---


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request) -> Response:
    redirect = await _guard(request, "/dashboard")
    if redirect is not None:
        return redirect
    view = DashboardController(_store(request), _cfg(request).dashboard_poll_interval)
    await _ctx(request).mount(view)
    return _render(request, "dashboard.html", view=view)


@router.get("/partials/dashboard", response_class=HTMLResponse)
def partial_dashboard(request: Request) -> Response:
    view = _mounted(request, DashboardController, "/dashboard")
    if view is None:
        return Response(status_code=STOP_POLLING)
    return _render(request, "partials/dashboard_stats.html", view=view)


# --- Live IoT data ---


@router.get("/live", response_class=HTMLResponse)
async def live(request: Request) -> Response:
    redirect = await _guard(request, "/live")
    if redirect is not None:
        return redirect
    view = SensorFeedController(_store(request), _cfg(request).sensor_poll_interval)
    await _ctx(request).mount(view)
    return _render(request, "live.html", view=view)


@router.get("/partials/sensors", response_class=HTMLResponse)
def partial_sensors(request: Request) -> Response:
    view = _mounted(request, SensorFeedController, "/live")
    if view is None:
        return Response(status_code=STOP_POLLING)
    return _render(request, "partials/sensor_grid.html", view=view)


# --- Alerts ---


@router.get("/alerts", response_class=HTMLResponse)
async def alerts(request: Request, show: str = "unresolved") -> Response:
    redirect = await _guard(request, "/alerts")
    if redirect is not None:
        return redirect
    view = AlertsController(_store(request))
    view.show_all = show == "all"
    await _ctx(request).mount(view)
    return _render(request, "alerts.html", view=view)


@router.get("/partials/alerts", response_class=HTMLResponse)
def partial_alerts(request: Request, show: str | None = None) -> Response:
    view = _mounted(request, AlertsController, "/alerts")
    if view is None:
        return _gone("/alerts")
    if show is not None:
        view.show_all = show == "all"
    return _render(request, "partials/alert_list.html", view=view)


@router.post("/alerts/{alert_id}/resolve", response_class=HTMLResponse)
async def resolve_alert(request: Request, alert_id: str) -> Response:
    view = _mounted(request, AlertsController, "/alerts")
    if view is None:
        return _gone("/alerts")
    # The list re-renders at once; the store write completes in the background
    view.resolve(alert_id)
    return _render(request, "partials/alert_list.html", view=view)


# --- AI insights ---


@router.get("/ai-predictions", response_class=HTMLResponse)
async def ai_predictions(request: Request) -> Response:
    redirect = await _guard(request, "/ai-predictions")
    if redirect is not None:
        return redirect
    requester = partial(
        generate_energy_report, cfg=_cfg(request), proxy_client=request.app.state.proxy_client
    )
    view = ReportController(_store(request), requester)
    await _ctx(request).mount(view)
    return _render(request, "ai.html", view=view)


@router.post("/ai-predictions/generate", response_class=HTMLResponse)
async def generate_report(request: Request) -> Response:
    view = _mounted(request, ReportController, "/ai-predictions")
    if view is None:
        return _gone("/ai-predictions")
    await view.generate()
    return _render(request, "partials/report.html", view=view)


# --- Net monitor ---


@router.get("/internet", response_class=HTMLResponse)
async def internet(request: Request) -> Response:
    redirect = await _guard(request, "/internet")
    if redirect is not None:
        return redirect
    view = InternetController(_store(request))
    await _ctx(request).mount(view)
    return _render(request, "internet.html", view=view)


# --- Management ---


def _kind(tab: str) -> EntityKind:
    return EntityKind(tab) if tab in EntityKind.__members__ else EntityKind.buildings


@router.get("/management", response_class=HTMLResponse)
async def management(request: Request, tab: str = "buildings") -> Response:
    redirect = await _guard(request, "/management")
    if redirect is not None:
        return redirect
    view = ManagementController(_store(request), _kind(tab))
    await _ctx(request).mount(view)
    return _render(request, "management.html", view=view, forms=FORMS, kinds=EntityKind)


@router.get("/partials/management", response_class=HTMLResponse)
async def partial_management(request: Request, tab: str | None = None) -> Response:
    view = _mounted(request, ManagementController, "/management")
    if view is None:
        return _gone("/management")
    if tab is not None and _kind(tab) != view.kind:
        await view.select(_kind(tab))
    return _render(request, "partials/entity_table.html", view=view)


@router.get("/management/form", response_class=HTMLResponse)
def management_form(request: Request, edit: str | None = None) -> Response:
    view = _mounted(request, ManagementController, "/management")
    if view is None:
        return _gone("/management")
    item = view.find(edit) if edit else None
    return _render(
        request,
        "partials/entity_form.html",
        view=view,
        editing_id=item.id if item else None,
        values=view.form.initial_values(item),
    )


@router.post("/management/save", response_class=HTMLResponse)
async def management_save(request: Request) -> Response:
    view = _mounted(request, ManagementController, "/management")
    if view is None:
        return _gone("/management")
    form = await request.form()
    values = {key: str(value) for key, value in form.items()}
    editing_id = values.pop("editing_id", "") or None
    if await view.save(values, editing_id):
        return _render(request, "partials/entity_table.html", view=view)
    # Keep the form open with what the user typed
    return _render(
        request,
        "partials/entity_form.html",
        view=view,
        editing_id=editing_id,
        values=values,
    )


@router.post("/management/{item_id}/delete", response_class=HTMLResponse)
async def management_delete(request: Request, item_id: str) -> Response:
    view = _mounted(request, ManagementController, "/management")
    if view is None:
        return _gone("/management")
    await view.delete(item_id)
    return _render(request, "partials/entity_table.html", view=view)


@router.post("/management/message/dismiss", response_class=HTMLResponse)
def management_dismiss(request: Request) -> Response:
    view = _mounted(request, ManagementController, "/management")
    if view is None:
        return _gone("/management")
    view.dismiss_message()
    return HTMLResponse("")


# --- Student ---


@router.get("/student-dashboard", response_class=HTMLResponse)
async def student_dashboard(request: Request) -> Response:
    redirect = await _guard(request, "/student-dashboard")
    if redirect is not None:
        return redirect
    await _ctx(request).unmount()
    return _render(request, "student.html", chart=student_chart_data())
