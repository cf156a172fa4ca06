"""Server-rendered pages: /login, /register, /admin, /dashboard.

Inline HTML, no template engine.  Every form posts back here and answers
with a 303 redirect carrying ``?notice=<code>``; the target page renders
the message from the notices catalog.  Pages authenticate with the
HttpOnly session cookie and send anyone without the right session to
/login.
"""

from __future__ import annotations

import html
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from sharedplan.api.dependencies import (
    SESSION_COOKIE,
    SESSION_FLAG_COOKIE,
    get_approval_workflow,
    get_directory,
    get_identity_gateway,
    get_page_principal,
)
from sharedplan.api.ratelimit import SIGN_IN_LIMIT, require_rate_limit
from sharedplan.core.config import SETTINGS
from sharedplan.core.notices import is_known
from sharedplan.core.notices import notice as lookup_notice
from sharedplan.models.group import Group
from sharedplan.models.principal import Principal
from sharedplan.models.user import User
from sharedplan.repos.errors import (
    GroupFullError,
    GroupNotFoundError,
    StoreError,
    UserNotFoundError,
)
from sharedplan.services import groups_service, payments, receipts, users_service
from sharedplan.services.approval_service import (
    ApprovalError,
    ApprovalFailedError,
    ApprovalWorkflow,
)
from sharedplan.services.directory import Directory
from sharedplan.services.identity import (
    EmailTakenError,
    IdentityError,
    IdentityGateway,
    RegistrationError,
    Session,
    UnknownSessionError,
    resolve_home,
)
from sharedplan.services.member_console import group_view
from sharedplan.services.token_service import SESSION_TTL_MIN

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"], include_in_schema=False)

_sign_in_limit = require_rate_limit(SIGN_IN_LIMIT)

PagePrincipal = Annotated[Principal | None, Depends(get_page_principal)]
Gateway = Annotated[IdentityGateway, Depends(get_identity_gateway)]
Dir = Annotated[Directory, Depends(get_directory)]
Workflow = Annotated[ApprovalWorkflow, Depends(get_approval_workflow)]

_STYLE = """\
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: system-ui, -apple-system, sans-serif; background: #1a1b1f;
       color: #e5e7eb; min-height: 100vh; }
main { max-width: 960px; margin: 0 auto; padding: 2rem 1rem; }
.center { display: flex; justify-content: center; align-items: center; min-height: 100vh; }
.card { background: #2a2b31; padding: 1.5rem; border-radius: 8px;
        box-shadow: 0 2px 8px rgba(0,0,0,.3); margin-bottom: 1.5rem; }
.narrow { width: 340px; }
h1 { font-size: 1.4rem; margin-bottom: 1.25rem; }
h2 { font-size: 1.1rem; margin-bottom: 1rem; }
label { display: block; font-size: .85rem; margin-bottom: .25rem; color: #9ca3af; }
input, select { width: 100%; padding: .5rem; margin-bottom: 1rem; background: #1a1b1f;
                color: #e5e7eb; border: 1px solid #3f4046; border-radius: 4px; }
input[type=checkbox] { width: auto; margin: 0 .4rem 0 0; }
button { padding: .55rem 1rem; background: #57A639; color: #fff; border: none;
         border-radius: 4px; cursor: pointer; }
button:hover { background: #4CAF50; }
button.danger { background: #b91c1c; }
table { width: 100%; border-collapse: collapse; }
td, th { text-align: left; padding: .5rem; border-bottom: 1px solid #3f4046; }
.row { display: flex; justify-content: space-between; align-items: center; gap: 1rem; }
.inline { display: flex; gap: .5rem; align-items: center; }
.inline input, .inline select { margin-bottom: 0; }
.notice { padding: .75rem 1rem; border-radius: 4px; margin-bottom: 1rem; }
.notice.success { background: #14532d; }
.notice.error { background: #7f1d1d; }
.bar { width: 100%; background: #3f4046; border-radius: 9999px; height: .5rem; }
.bar > div { background: #57A639; height: .5rem; border-radius: 9999px; }
.muted { color: #9ca3af; font-size: .85rem; }
a { color: #57A639; }
"""

_GROUP_STREAM_JS = """\
const source = new EventSource("/v1/me/group/events");
source.addEventListener("group", (event) => {
  const view = JSON.parse(event.data);
  document.getElementById("group-name").textContent = view.groupName;
  document.getElementById("renewal-date").textContent = view.renewalDate;
  document.getElementById("member-count").textContent =
    view.memberCount + " / " + view.capacity;
  document.getElementById("progress-label").textContent = view.progress + "%";
  document.getElementById("progress-bar").style.width = view.progress + "%";
});
"""


def _esc(value: object) -> str:
    return html.escape(str(value), quote=True)


def _banner(notice_code: str | None) -> str:
    if not notice_code or not is_known(notice_code):
        return ""
    n = lookup_notice(notice_code)
    return f'<div class="notice {n.level}">{_esc(n.message)}</div>'


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        status_code=status_code,
        content=(
            "<!DOCTYPE html>\n<html lang=\"es\">\n<head>\n"
            '<meta charset="utf-8">\n'
            '<meta name="viewport" content="width=device-width, initial-scale=1">\n'
            f"<title>{_esc(title)}</title>\n<style>\n{_STYLE}</style>\n</head>\n"
            f"<body>{body}</body>\n</html>\n"
        ),
    )


def store_unavailable_page() -> HTMLResponse:
    body = f"""
<div class="center"><div class="card narrow">
  <h1>Servicio no disponible</h1>
  {_banner("load_failed")}
  <p class="muted"><a href="/login">Volver a intentar</a></p>
</div></div>"""
    return _page("Servicio no disponible", body, status_code=503)


def _redirect(path: str, notice_code: str | None = None) -> RedirectResponse:
    url = f"{path}?notice={notice_code}" if notice_code else path
    return RedirectResponse(url=url, status_code=303)


def _start_session(session: Session, notice_code: str) -> RedirectResponse:
    response = _redirect(session.home, notice_code)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.session_token,
        httponly=True,
        samesite="lax",
        secure=SETTINGS.is_prod,
        path="/",
        max_age=SESSION_TTL_MIN * 60,
    )
    response.set_cookie(
        key=SESSION_FLAG_COOKIE,
        value="true",
        samesite="lax",
        secure=SETTINGS.is_prod,
        path="/",
        max_age=SESSION_TTL_MIN * 60,
    )
    return response


async def _page_user(
    principal: Principal | None, gateway: IdentityGateway
) -> User | None:
    if principal is None:
        return None
    try:
        return await gateway.current_user(principal)
    except UnknownSessionError:
        return None


# --------------------------------------------------------------------------
# /login, /register, /logout
# --------------------------------------------------------------------------


def _google_block() -> str:
    if not SETTINGS.google_client_id:
        return ""
    return f"""
    <p class="muted" style="margin:1rem 0 .5rem">o</p>
    <script src="https://accounts.google.com/gsi/client" async></script>
    <div id="g_id_onload" data-client_id="{_esc(SETTINGS.google_client_id)}"
         data-login_uri="/login/google" data-ux_mode="redirect"></div>
    <div class="g_id_signin" data-type="standard"></div>"""


@router.get("/")
async def root(principal: PagePrincipal, gateway: Gateway) -> RedirectResponse:
    user = await _page_user(principal, gateway)
    if user is None:
        return _redirect("/login")
    return _redirect(resolve_home(user))


@router.get("/login")
async def login_page(notice: str | None = Query(None)) -> HTMLResponse:
    body = f"""
<div class="center"><div class="card narrow">
  <h1>Iniciar sesión</h1>
  {_banner(notice)}
  <form method="post" action="/login">
    <label for="email">Correo electrónico</label>
    <input id="email" name="email" type="email" required autofocus>
    <label for="password">Contraseña</label>
    <input id="password" name="password" type="password" required>
    <button type="submit">Iniciar sesión</button>
  </form>
  {_google_block()}
  <p class="muted" style="margin-top:1rem">¿No tienes cuenta? <a href="/register">Regístrate</a></p>
</div></div>"""
    return _page("Iniciar sesión", body)


@router.post("/login", dependencies=[Depends(_sign_in_limit)])
async def login_submit(
    gateway: Gateway,
    email: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    try:
        session = await gateway.sign_in_with_email(email, password)
    except IdentityError:
        return _redirect("/login", "login_failed")
    return _start_session(session, "login_ok")


@router.post("/login/google", dependencies=[Depends(_sign_in_limit)])
async def google_submit(
    gateway: Gateway, credential: str = Form("")
) -> RedirectResponse:
    try:
        session = await gateway.sign_in_with_google(credential)
    except IdentityError:
        return _redirect("/login", "google_login_failed")
    return _start_session(session, "google_login_ok")


@router.get("/register")
async def register_page(notice: str | None = Query(None)) -> HTMLResponse:
    body = f"""
<div class="center"><div class="card narrow">
  <h1>Crear cuenta</h1>
  {_banner(notice)}
  <form method="post" action="/register">
    <label for="email">Correo electrónico</label>
    <input id="email" name="email" type="email" required autofocus>
    <label for="password">Contraseña (mínimo 6 caracteres)</label>
    <input id="password" name="password" type="password" minlength="6" required>
    <button type="submit">Registrarse</button>
  </form>
  <p class="muted" style="margin-top:1rem">¿Ya tienes cuenta? <a href="/login">Inicia sesión</a></p>
</div></div>"""
    return _page("Crear cuenta", body)


@router.post("/register", dependencies=[Depends(_sign_in_limit)])
async def register_submit(
    gateway: Gateway,
    email: str = Form(""),
    password: str = Form(""),
) -> RedirectResponse:
    try:
        session = await gateway.sign_up(email, password)
    except RegistrationError as e:
        return _redirect("/register", e.code)
    except EmailTakenError:
        return _redirect("/register", "email_taken")
    except StoreError:
        logger.exception("Registration failed")
        return _redirect("/register", "register_failed")
    return _start_session(session, "register_ok")


@router.post("/logout")
async def logout_submit(principal: PagePrincipal, gateway: Gateway) -> RedirectResponse:
    if principal is not None:
        await gateway.sign_out(principal)
    response = _redirect("/login", "signout_ok")
    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(SESSION_FLAG_COOKIE, path="/")
    return response


# --------------------------------------------------------------------------
# /admin
# --------------------------------------------------------------------------


def _group_options(groups: list[Group], capacity: int) -> str:
    options = ['<option value="">Seleccionar grupo</option>']
    for g in groups:
        options.append(
            f'<option value="{g.id}">{_esc(g.name)} '
            f"({g.member_count}/{capacity})</option>"
        )
    return "".join(options)


def _pending_rows(users: list[User], options: str) -> str:
    if not users:
        return '<tr><td colspan="3" class="muted">No hay usuarios pendientes</td></tr>'
    rows = []
    for u in users:
        rows.append(
            f"""<tr><td>{_esc(u.email)}</td>
<td class="muted">{u.created_at:%Y-%m-%d}</td>
<td><form method="post" action="/admin/approve" class="inline">
  <input type="hidden" name="user_id" value="{u.id}">
  <select name="group_id">{options}</select>
  <button type="submit">Aprobar</button>
</form></td></tr>"""
        )
    return "".join(rows)


def _group_rows(groups: list[Group], capacity: int) -> str:
    if not groups:
        return '<tr><td colspan="4" class="muted">No hay grupos</td></tr>'
    rows = []
    for g in groups:
        rows.append(
            f"""<tr><td>{_esc(g.name)}</td>
<td>Renovación: {g.renewal_date.isoformat()}</td>
<td>{g.member_count}/{capacity}</td>
<td><form method="post" action="/admin/groups/{g.id}/delete" class="inline">
  <label class="inline"><input type="checkbox" name="confirm" value="yes">Confirmar</label>
  <button type="submit" class="danger">Eliminar</button>
</form></td></tr>"""
        )
    return "".join(rows)


@router.get("/admin", response_model=None)
async def admin_page(
    principal: PagePrincipal,
    gateway: Gateway,
    directory: Dir,
    notice: str | None = Query(None),
    q: str = Query(""),
) -> HTMLResponse | RedirectResponse:
    user = await _page_user(principal, gateway)
    if principal is None or not principal.is_admin() or user is None:
        return _redirect("/login")

    capacity = SETTINGS.group_capacity
    pending = await users_service.list_pending_users(directory.users, q)
    groups = await groups_service.list_groups(directory.groups)
    selectable = [g for g in groups if g.has_room(capacity)]
    options = _group_options(selectable, capacity)

    body = f"""
<main>
  <div class="row"><h1>Panel de administración</h1>
    <form method="post" action="/logout"><button type="submit">Cerrar sesión</button></form>
  </div>
  {_banner(notice)}
  <section class="card">
    <h2>Usuarios pendientes</h2>
    <form method="get" action="/admin" class="inline" style="margin-bottom:1rem">
      <input name="q" value="{_esc(q)}" placeholder="Buscar por correo">
      <button type="submit">Buscar</button>
    </form>
    <table>{_pending_rows(pending, options)}</table>
  </section>
  <section class="card">
    <h2>Crear grupo</h2>
    <form method="post" action="/admin/groups" class="inline">
      <input name="name" placeholder="Nombre del grupo">
      <input name="renewal_date" type="date">
      <button type="submit">Crear</button>
    </form>
  </section>
  <section class="card">
    <h2>Grupos</h2>
    <table>{_group_rows(groups, capacity)}</table>
  </section>
</main>"""
    return _page("Administración", body)


@router.post("/admin/approve", response_model=None)
async def admin_approve(
    principal: PagePrincipal,
    workflow: Workflow,
    user_id: str = Form(""),
    group_id: str = Form(""),
) -> RedirectResponse:
    if principal is None or not principal.is_admin():
        return _redirect("/login")
    try:
        target_user = UUID(user_id)
    except ValueError:
        return _redirect("/admin", "user_not_found")
    try:
        target_group = UUID(group_id) if group_id.strip() else None
    except ValueError:
        return _redirect("/admin", "group_not_found")

    try:
        await workflow.approve(target_user, target_group)
    except UserNotFoundError:
        return _redirect("/admin", "user_not_found")
    except GroupNotFoundError:
        return _redirect("/admin", "group_not_found")
    except GroupFullError:
        return _redirect("/admin", "group_full")
    except ApprovalFailedError as e:
        code = "group_full" if isinstance(e.cause, GroupFullError) else e.code
        return _redirect("/admin", code)
    except ApprovalError as e:
        return _redirect("/admin", e.code)
    except StoreError:
        logger.exception("Approval failed")
        return _redirect("/admin", "approval_failed")
    return _redirect("/admin", "approval_ok")


@router.post("/admin/groups", response_model=None)
async def admin_create_group(
    principal: PagePrincipal,
    directory: Dir,
    name: str = Form(""),
    renewal_date: str = Form(""),
) -> RedirectResponse:
    if principal is None or not principal.is_admin():
        return _redirect("/login")
    try:
        await groups_service.create_group(directory.groups, name, renewal_date)
    except groups_service.GroupValidationError:
        return _redirect("/admin", "fill_all_fields")
    except StoreError:
        logger.exception("Group creation failed")
        return _redirect("/admin", "group_create_failed")
    return _redirect("/admin", "group_created")


@router.post("/admin/groups/{group_id}/delete", response_model=None)
async def admin_delete_group(
    group_id: UUID,
    principal: PagePrincipal,
    directory: Dir,
    confirm: str = Form(""),
) -> RedirectResponse:
    if principal is None or not principal.is_admin():
        return _redirect("/login")
    try:
        await groups_service.delete_group(
            directory.groups, group_id, confirmed=confirm == "yes"
        )
    except groups_service.ConfirmationRequiredError:
        return _redirect("/admin", "confirm_delete")
    except GroupNotFoundError:
        return _redirect("/admin", "group_not_found")
    except StoreError:
        logger.exception("Group deletion failed  group_id=%s", group_id)
        return _redirect("/admin", "group_delete_failed")
    return _redirect("/admin", "group_deleted")


# --------------------------------------------------------------------------
# /dashboard
# --------------------------------------------------------------------------


def _payment_methods_block() -> str:
    blocks = []
    for method in payments.payment_methods(
        SETTINGS.payment_phone, SETTINGS.support_chat_url
    ):
        steps = "".join(f"<li>{_esc(step)}</li>" for step in method.steps)
        blocks.append(
            f"<details><summary>{_esc(method.name)}</summary>"
            f'<ol style="margin:.5rem 0 1rem 1.25rem">{steps}</ol></details>'
        )
    return "".join(blocks)


_PAYMENT_STATUS_LABELS = {"completed": "Completado", "pending": "Pendiente", "failed": "Fallido"}


def _history_rows() -> str:
    return "".join(
        f"<tr><td>{p.date.isoformat()}</td><td>${p.amount:,}</td>"
        f"<td>{_esc(p.method)}</td><td>{_PAYMENT_STATUS_LABELS[p.status]}</td></tr>"
        for p in payments.payment_history()
    )


def _dashboard(
    user: User,
    group: Group | None,
    notice_code: str | None,
    preview: receipts.ReceiptPreview | None = None,
) -> HTMLResponse:
    view = group_view(user, group, SETTINGS.group_capacity)
    status_label = "Activo" if user.status == "approved" else "Pendiente"
    pending_banner = ""
    if user.is_pending:
        pending_banner = (
            f'<div class="notice error">{_esc(lookup_notice("pending_approval").message)}</div>'
        )

    preview_block = ""
    if preview is not None:
        if preview.data_url:
            preview_block = (
                f'<img src="{_esc(preview.data_url)}" alt="Comprobante" '
                'style="max-width:100%;margin-top:1rem;border-radius:4px">'
            )
        else:
            preview_block = f'<p class="muted">{_esc(preview.filename)}</p>'

    stream = f"<script>\n{_GROUP_STREAM_JS}</script>" if view['assigned'] else ""

    body = f"""
<main>
  <div class="row"><h1>Hola, {_esc(user.display_name)}</h1>
    <form method="post" action="/logout"><button type="submit">Cerrar sesión</button></form>
  </div>
  {_banner(notice_code)}
  {pending_banner}
  <section class="card">
    <h2>Información del Grupo</h2>
    <p class="row"><span>Estado</span><span>{status_label}</span></p>
    <p class="row"><span>Progreso del periodo</span><span id="progress-label">{view['progress']}%</span></p>
    <div class="bar"><div id="progress-bar" style="width:{view['progress']}%"></div></div>
    <p class="row"><span>Próximo pago</span><span id="renewal-date">{_esc(view['renewalDate'])}</span></p>
    <p class="row"><span>Grupo</span><span id="group-name">{_esc(view['groupName'])}</span></p>
    <p class="row"><span>Miembros</span><span id="member-count">{view['memberCount']} / {view['capacity']}</span></p>
  </section>
  <section class="card">
    <h2>Métodos de Pago</h2>
    {_payment_methods_block()}
  </section>
  <section class="card">
    <h2>Subir comprobante</h2>
    <form method="post" action="/dashboard/receipt" enctype="multipart/form-data" class="inline">
      <input type="file" name="file" accept="image/*,application/pdf" required>
      <button type="submit">Enviar comprobante</button>
    </form>
    {preview_block}
  </section>
  <section class="card">
    <h2>Historial de Pagos</h2>
    <table>{_history_rows()}</table>
  </section>
</main>
{stream}"""
    return _page("Mi suscripción", body)


async def _member_context(
    principal: Principal | None, gateway: IdentityGateway, directory: Directory
) -> tuple[User, Group | None] | None:
    user = await _page_user(principal, gateway)
    if user is None:
        return None
    group = await directory.groups.get(user.group_id) if user.group_id else None
    return user, group


@router.get("/dashboard", response_model=None)
async def dashboard_page(
    principal: PagePrincipal,
    gateway: Gateway,
    directory: Dir,
    notice: str | None = Query(None),
) -> HTMLResponse | RedirectResponse:
    context = await _member_context(principal, gateway, directory)
    if context is None:
        return _redirect("/login")
    user, group = context
    return _dashboard(user, group, notice)


@router.post("/dashboard/receipt", response_model=None)
async def dashboard_receipt(
    principal: PagePrincipal,
    gateway: Gateway,
    directory: Dir,
    file: Annotated[UploadFile, File()],
) -> HTMLResponse | RedirectResponse:
    context = await _member_context(principal, gateway, directory)
    if context is None:
        return _redirect("/login")
    user, group = context

    data = await file.read(receipts.MAX_RECEIPT_BYTES + 1)
    try:
        preview = receipts.build_preview(file.filename, file.content_type, data)
    except receipts.ReceiptError as e:
        return _redirect("/dashboard", e.code)

    await receipts.submit_receipt(
        user.id, preview, delay=SETTINGS.receipt_delay_seconds
    )
    return _dashboard(user, group, "receipt_sent", preview)
