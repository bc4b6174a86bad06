from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from .authz import current_actor, roles_required
from .backend import get_backend
from .errors import BackendError, InvalidTransition, ServiceError, safe_error_message
from .extensions import db, limiter, login_manager
from .models import Employee
from .services import audit_logs as audit_svc
from .services import billing as billing_svc
from .services import categories as category_svc
from .services import comments as comment_svc
from .services import customers as customer_svc
from .services import employees as employee_svc
from .services import invoice_export
from .services import plans as plan_svc
from .services import settings as settings_svc
from .services import tickets as ticket_svc
from .stores import (
    AlertStore,
    AuditLogStore,
    BillingStore,
    CustomerStore,
    DepartmentStore,
    DeviceStore,
    FinanceStore,
    InventoryStore,
    KnowledgeStore,
    PlanStore,
    SubnetStore,
    TicketStore,
)

api = Blueprint("api", __name__, url_prefix="/api")

WRITE_LIMIT = "30 per minute"


# ======================================================
# Identity (X-Employee-Id header)
# ======================================================
@login_manager.request_loader
def load_employee_from_request(req):
    employee_id = (req.headers.get("X-Employee-Id") or "").strip()
    if not employee_id:
        return None
    employee = db.session.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        return None
    return employee


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"ok": False, "error": "Authentication required"}), 401


# ======================================================
# Errors
# ======================================================
@api.errorhandler(InvalidTransition)
def invalid_transition(e: InvalidTransition):
    return jsonify({"ok": False, "error": str(e)}), 409


@api.errorhandler(ServiceError)
def service_error(e: ServiceError):
    return jsonify({"ok": False, "error": str(e)}), 400


@api.errorhandler(BackendError)
def backend_error(e: BackendError):
    return jsonify({"ok": False, "error": safe_error_message(e)}), 400


@api.errorhandler(HTTPException)
def http_error(e: HTTPException):
    return jsonify({"ok": False, "error": e.description or e.name}), e.code


@api.errorhandler(Exception)
def api_errorhandler(e):
    current_app.logger.exception("Unhandled error in /api/*")
    return jsonify({"ok": False, "error": "Internal Server Error"}), 500


# ======================================================
# Helpers
# ======================================================
def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ServiceError("Request body must be a JSON object")
    return data


def _store(cls, *args):
    return cls(
        get_backend(),
        *args,
        actor=current_actor(),
        strict=bool(current_app.config.get("STRICT_TRANSITIONS", False)),
    )


def _not_found(what: str):
    return jsonify({"ok": False, "error": f"{what} not found"}), 404


# ======================================================
# Customers
# ======================================================
@api.get("/customers")
def customers_list():
    store = _store(CustomerStore)
    return jsonify({"ok": True, "customers": store.load()})


@api.post("/customers")
@limiter.limit(WRITE_LIMIT)
def customers_create():
    customer = _store(CustomerStore).add(_body())
    return jsonify({"ok": True, "customer": customer}), 201


@api.get("/customers/<customer_id>")
def customers_get(customer_id: str):
    customer = customer_svc.fetch_customer(get_backend(), customer_id)
    if customer is None:
        return _not_found("Customer")
    return jsonify({"ok": True, "customer": customer})


@api.patch("/customers/<customer_id>")
@limiter.limit(WRITE_LIMIT)
def customers_update(customer_id: str):
    customer = _store(CustomerStore).edit(customer_id, _body())
    return jsonify({"ok": True, "customer": customer})


@api.delete("/customers/<customer_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def customers_delete(customer_id: str):
    _store(CustomerStore).remove(customer_id)
    return jsonify({"ok": True})


@api.get("/customers/<customer_id>/history")
def customers_history(customer_id: str):
    logs = audit_svc.fetch_audit_logs_by_entity(get_backend(), "Customer", customer_id)
    return jsonify({"ok": True, "logs": logs})


# ======================================================
# Tickets
# ======================================================
@api.get("/tickets")
def tickets_list():
    store = _store(TicketStore)
    return jsonify({"ok": True, "tickets": store.load()})


@api.post("/tickets")
@limiter.limit(WRITE_LIMIT)
def tickets_create():
    ticket = _store(TicketStore).add(_body())
    return jsonify({"ok": True, "ticket": ticket}), 201


@api.get("/tickets/<ticket_id>")
def tickets_get(ticket_id: str):
    ticket = ticket_svc.fetch_ticket(get_backend(), ticket_id)
    if ticket is None:
        return _not_found("Ticket")
    return jsonify({"ok": True, "ticket": ticket})


@api.patch("/tickets/<ticket_id>")
@limiter.limit(WRITE_LIMIT)
def tickets_update(ticket_id: str):
    ticket = _store(TicketStore).edit(ticket_id, _body())
    return jsonify({"ok": True, "ticket": ticket})


@api.delete("/tickets/<ticket_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def tickets_delete(ticket_id: str):
    _store(TicketStore).remove(ticket_id)
    return jsonify({"ok": True})


@api.post("/tickets/<ticket_id>/escalate")
@limiter.limit(WRITE_LIMIT)
def tickets_escalate(ticket_id: str):
    data = _body()
    ticket = _store(TicketStore).escalate(ticket_id, data.get("reason") or "", data.get("assignee") or None)
    return jsonify({"ok": True, "ticket": ticket})


@api.get("/tickets/<ticket_id>/comments")
def comments_list(ticket_id: str):
    return jsonify({"ok": True, "comments": comment_svc.fetch_comments(get_backend(), ticket_id)})


@api.post("/tickets/<ticket_id>/comments")
@limiter.limit(WRITE_LIMIT)
def comments_create(ticket_id: str):
    data = _body()
    content = (data.get("content") or "").strip()
    if not content:
        raise ServiceError("content is required")
    comment = comment_svc.create_comment(
        get_backend(),
        {
            "ticket_id": ticket_id,
            "content": content,
            "author_name": data.get("author_name") or current_actor() or "Staff",
        },
    )
    return jsonify({"ok": True, "comment": comment}), 201


@api.get("/tickets/<ticket_id>/history")
def tickets_history(ticket_id: str):
    logs = audit_svc.fetch_audit_logs_by_entity(get_backend(), "Ticket", ticket_id)
    return jsonify({"ok": True, "logs": logs})


# ======================================================
# Billing
# ======================================================
@api.get("/customers/<customer_id>/billing")
def billing_get(customer_id: str):
    store = _store(BillingStore, customer_id)
    store.load()
    return jsonify({"ok": True, "invoices": store.invoices, "payment_methods": store.payment_methods.rows()})


@api.post("/customers/<customer_id>/invoices")
@limiter.limit(WRITE_LIMIT)
def invoices_create(customer_id: str):
    data = _body()
    if data.get("amount") is None or not data.get("due_date"):
        raise ServiceError("amount and due_date are required")
    invoice = _store(BillingStore, customer_id).create_invoice(
        data["amount"], data["due_date"], data.get("description")
    )
    return jsonify({"ok": True, "invoice": invoice}), 201


@api.post("/customers/<customer_id>/payment-methods")
@limiter.limit(WRITE_LIMIT)
def payment_methods_create(customer_id: str):
    method = _store(BillingStore, customer_id).add_method(_body())
    return jsonify({"ok": True, "payment_method": method}), 201


@api.get("/invoices")
def invoices_list():
    store = _store(FinanceStore)
    return jsonify({"ok": True, "invoices": store.load()})


@api.patch("/invoices/<invoice_id>")
@limiter.limit(WRITE_LIMIT)
def invoices_update_status(invoice_id: str):
    data = _body()
    if not data.get("status"):
        raise ServiceError("status is required")
    invoice = billing_svc.fetch_invoice(get_backend(), invoice_id)
    if invoice is None:
        return _not_found("Invoice")
    updated = _store(BillingStore, invoice["customer_id"]).update_status(invoice_id, data["status"])
    return jsonify({"ok": True, "invoice": updated})


@api.post("/invoices/<invoice_id>/pay")
@limiter.limit(WRITE_LIMIT)
def invoices_mark_paid(invoice_id: str):
    invoice = _store(FinanceStore).mark_as_paid(invoice_id)
    return jsonify({"ok": True, "invoice": invoice})


@api.get("/invoices/<invoice_id>/export")
def invoices_export(invoice_id: str):
    backend = get_backend()
    invoice = billing_svc.fetch_invoice(backend, invoice_id)
    if invoice is None:
        return _not_found("Invoice")
    customer = customer_svc.fetch_customer(backend, invoice["customer_id"]) or {}

    html = invoice_export.render_invoice_html(invoice, customer, invoice_export.resolve_currency(backend))
    return Response(
        html,
        mimetype="text/html",
        headers={"Content-Disposition": f'attachment; filename="{invoice_export.invoice_filename(invoice)}"'},
    )


@api.post("/billing/run")
@limiter.limit("5 per minute")
@roles_required("admin", "manager")
def billing_run():
    backend = get_backend()
    customers = customer_svc.fetch_customers(backend)
    plans = plan_svc.fetch_plans(backend)

    result = _store(FinanceStore).run_billing_cycle(customers, plans)
    return jsonify(
        {
            "ok": result.ok,
            "created": result.count,
            "failed": [asdict(f) for f in result.failed],
        }
    )


# ======================================================
# Network devices
# ======================================================
@api.get("/devices")
def devices_list():
    store = _store(DeviceStore)
    return jsonify({"ok": True, "devices": store.load()})


@api.post("/devices")
@limiter.limit(WRITE_LIMIT)
def devices_create():
    device = _store(DeviceStore).add(_body())
    return jsonify({"ok": True, "device": device}), 201


@api.patch("/devices/<device_id>")
@limiter.limit(WRITE_LIMIT)
def devices_update(device_id: str):
    device = _store(DeviceStore).edit(device_id, _body())
    return jsonify({"ok": True, "device": device})


@api.delete("/devices/<device_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager", "technician")
def devices_delete(device_id: str):
    _store(DeviceStore).remove(device_id)
    return jsonify({"ok": True})


# ======================================================
# Plans
# ======================================================
@api.get("/plans")
def plans_list():
    store = _store(PlanStore)
    return jsonify({"ok": True, "plans": store.load()})


@api.post("/plans")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def plans_create():
    plan = _store(PlanStore).add(_body())
    return jsonify({"ok": True, "plan": plan}), 201


@api.delete("/plans/<plan_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def plans_delete(plan_id: str):
    _store(PlanStore).remove(plan_id)
    return jsonify({"ok": True})


# ======================================================
# Employees
# ======================================================
@api.get("/employees")
def employees_list():
    return jsonify({"ok": True, "employees": employee_svc.fetch_employees(get_backend())})


@api.get("/employees/<employee_id>")
def employees_get(employee_id: str):
    employee = employee_svc.fetch_employee(get_backend(), employee_id)
    if employee is None:
        return _not_found("Employee")
    return jsonify({"ok": True, "employee": employee})


@api.post("/employees")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin")
def employees_create():
    employee = employee_svc.create_employee(get_backend(), _body())
    return jsonify({"ok": True, "employee": employee}), 201


@api.patch("/employees/<employee_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin")
def employees_update(employee_id: str):
    employee = employee_svc.update_employee(get_backend(), employee_id, _body())
    return jsonify({"ok": True, "employee": employee})


@api.delete("/employees/<employee_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin")
def employees_delete(employee_id: str):
    employee_svc.delete_employee(get_backend(), employee_id)
    return jsonify({"ok": True})


# ======================================================
# Ticket categories
# ======================================================
@api.get("/categories")
def categories_list():
    return jsonify({"ok": True, "categories": category_svc.fetch_categories(get_backend())})


@api.post("/categories")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def categories_create():
    category = category_svc.create_category(get_backend(), _body())
    return jsonify({"ok": True, "category": category}), 201


@api.patch("/categories/<category_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def categories_update(category_id: str):
    category = category_svc.update_category(get_backend(), category_id, _body())
    return jsonify({"ok": True, "category": category})


@api.delete("/categories/<category_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def categories_delete(category_id: str):
    category_svc.delete_category(get_backend(), category_id)
    return jsonify({"ok": True})


@api.post("/categories/seed")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin")
def categories_seed():
    seeded = category_svc.seed_default_categories(get_backend())
    return jsonify({"ok": True, "seeded": len(seeded)})


# ======================================================
# System settings
# ======================================================
@api.get("/settings/<key>")
def settings_get(key: str):
    value = settings_svc.fetch_setting(get_backend(), key)
    if value is None:
        return _not_found("Setting")
    return jsonify({"ok": True, "key": key, "value": value})


@api.put("/settings/<key>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin")
def settings_put(key: str):
    data = _body()
    value = data.get("value")
    if value is None or str(value).strip() == "":
        raise ServiceError("value is required")
    settings_svc.update_setting(get_backend(), key, str(value), data.get("description"))
    return jsonify({"ok": True, "key": key, "value": str(value)})


# ======================================================
# Inventory (warehouse stock)
# ======================================================
@api.get("/inventory")
def inventory_list():
    store = _store(InventoryStore)
    store.load()
    return jsonify({"ok": True, "items": store.rows, "low_stock": [i["id"] for i in store.low_stock]})


@api.post("/inventory")
@limiter.limit(WRITE_LIMIT)
def inventory_create():
    item = _store(InventoryStore).add(_body())
    return jsonify({"ok": True, "item": item}), 201


@api.patch("/inventory/<item_id>")
@limiter.limit(WRITE_LIMIT)
def inventory_update(item_id: str):
    item = _store(InventoryStore).edit(item_id, _body())
    return jsonify({"ok": True, "item": item})


@api.post("/inventory/<item_id>/adjust")
@limiter.limit(WRITE_LIMIT)
def inventory_adjust(item_id: str):
    item = _store(InventoryStore).adjust_stock(item_id, _body().get("delta"))
    return jsonify({"ok": True, "item": item})


@api.delete("/inventory/<item_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def inventory_delete(item_id: str):
    _store(InventoryStore).remove(item_id)
    return jsonify({"ok": True})


# ======================================================
# Network alerts / subnets
# ======================================================
@api.get("/alerts")
def alerts_list():
    store = _store(AlertStore)
    return jsonify({"ok": True, "alerts": store.load()})


@api.post("/alerts")
@limiter.limit(WRITE_LIMIT)
def alerts_create():
    alert = _store(AlertStore).trigger(_body())
    return jsonify({"ok": True, "alert": alert}), 201


@api.get("/subnets")
def subnets_list():
    store = _store(SubnetStore)
    return jsonify({"ok": True, "subnets": store.load()})


@api.post("/subnets")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager", "technician")
def subnets_create():
    subnet = _store(SubnetStore).add(_body())
    return jsonify({"ok": True, "subnet": subnet}), 201


@api.patch("/subnets/<subnet_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager", "technician")
def subnets_update(subnet_id: str):
    subnet = _store(SubnetStore).edit(subnet_id, _body())
    return jsonify({"ok": True, "subnet": subnet})


@api.delete("/subnets/<subnet_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager", "technician")
def subnets_delete(subnet_id: str):
    _store(SubnetStore).remove(subnet_id)
    return jsonify({"ok": True})


# ======================================================
# Departments
# ======================================================
@api.get("/departments")
def departments_list():
    store = _store(DepartmentStore)
    return jsonify({"ok": True, "departments": store.load()})


@api.post("/departments")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def departments_create():
    department = _store(DepartmentStore).add(_body())
    return jsonify({"ok": True, "department": department}), 201


@api.patch("/departments/<department_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def departments_update(department_id: str):
    department = _store(DepartmentStore).edit(department_id, _body())
    return jsonify({"ok": True, "department": department})


@api.delete("/departments/<department_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def departments_delete(department_id: str):
    _store(DepartmentStore).remove(department_id)
    return jsonify({"ok": True})


# ======================================================
# Knowledge base
# ======================================================
@api.get("/kb/articles")
def articles_list():
    store = _store(KnowledgeStore)
    return jsonify({"ok": True, "articles": store.load()})


@api.post("/kb/articles")
@limiter.limit(WRITE_LIMIT)
def articles_create():
    article = _store(KnowledgeStore).add(_body())
    return jsonify({"ok": True, "article": article}), 201


@api.patch("/kb/articles/<article_id>")
@limiter.limit(WRITE_LIMIT)
def articles_update(article_id: str):
    article = _store(KnowledgeStore).edit(article_id, _body())
    return jsonify({"ok": True, "article": article})


@api.delete("/kb/articles/<article_id>")
@limiter.limit(WRITE_LIMIT)
@roles_required("admin", "manager")
def articles_delete(article_id: str):
    _store(KnowledgeStore).remove(article_id)
    return jsonify({"ok": True})


@api.post("/kb/articles/<article_id>/view")
def articles_view(article_id: str):
    views = _store(KnowledgeStore).record_view(article_id)
    return jsonify({"ok": views is not None, "views": views})


# ======================================================
# Audit feed
# ======================================================
@api.get("/audit-logs")
def audit_logs_list():
    store = _store(AuditLogStore)
    return jsonify({"ok": True, "logs": store.load()})
