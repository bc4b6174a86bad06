from __future__ import annotations

import uuid
from datetime import datetime, timezone

from flask_login import UserMixin

from .extensions import db


def utcnow_naive() -> datetime:
    """DB stores naive UTC everywhere in this project."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


# =========================================================
# Employees (staff; also the request actor)
# =========================================================
class Employee(UserMixin, db.Model):
    __tablename__ = "employees"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)

    # admin / manager / support / technician / customer
    role = db.Column(db.String(20), nullable=False, default="support", index=True)
    # active / inactive / on_leave
    status = db.Column(db.String(20), nullable=False, default="active", index=True)

    phone = db.Column(db.String(40), nullable=True)
    department = db.Column(db.String(80), nullable=True)
    avatar_url = db.Column(db.String(255), nullable=True)
    identity_number = db.Column(db.String(60), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    hire_date = db.Column(db.DateTime, nullable=True)
    certifications = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() != "inactive"

    def has_role(self, *roles: str) -> bool:
        return (self.role or "").lower() in {r.lower() for r in roles}

    def __repr__(self) -> str:
        return f"<Employee id={self.id} email={self.email} role={self.role}>"


# =========================================================
# Plans (subscription tiers)
# =========================================================
class Plan(db.Model):
    __tablename__ = "plans"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(80), nullable=False)
    price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    # free text, e.g. "100 Mbps"
    download_speed = db.Column(db.String(30), nullable=True)
    upload_speed = db.Column(db.String(30), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)

    def __repr__(self) -> str:
        return f"<Plan id={self.id} name={self.name} price={self.price}>"


# =========================================================
# Customers (subscribers)
# =========================================================
class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(120), nullable=False, index=True)
    email = db.Column(db.String(120), nullable=True, index=True)
    phone = db.Column(db.String(40), nullable=True)

    # residential / corporate
    type = db.Column(db.String(20), nullable=False, default="residential")
    identity_number = db.Column(db.String(60), nullable=True)
    company = db.Column(db.String(120), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    coordinates = db.Column(db.String(60), nullable=True)

    # pending_survey / survey_completed / survey_failed / scheduled / installed
    installation_status = db.Column(db.String(30), nullable=False, default="pending_survey", index=True)
    odp_port = db.Column(db.String(40), nullable=True)
    survey_notes = db.Column(db.Text, nullable=True)

    subscription_plan = db.Column(db.String(80), nullable=True)
    plan_id = db.Column(db.String(36), db.ForeignKey("plans.id", ondelete="SET NULL"), nullable=True, index=True)

    # lead / pending / active / suspended / cancelled
    account_status = db.Column(db.String(20), nullable=False, default="lead", index=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name} status={self.account_status}>"


# =========================================================
# Tickets
# =========================================================
class Ticket(db.Model):
    __tablename__ = "tickets"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=False)

    # open / assigned / in_progress / resolved / verified / closed
    status = db.Column(db.String(20), nullable=False, default="open", index=True)
    # low / medium / high
    priority = db.Column(db.String(10), nullable=False, default="medium", index=True)
    # free text; ticket_categories.code by convention
    category = db.Column(db.String(40), nullable=False, index=True)

    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)

    is_escalated = db.Column(db.Boolean, nullable=False, default=False)
    assigned_to = db.Column(db.String(120), nullable=True, index=True)
    due_date = db.Column(db.DateTime, nullable=True)
    resolution_notes = db.Column(db.Text, nullable=True)
    root_cause = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} status={self.status} priority={self.priority}>"


class TicketComment(db.Model):
    __tablename__ = "ticket_comments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    ticket_id = db.Column(db.String(36), db.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)

    content = db.Column(db.Text, nullable=False)
    author_name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False, index=True)


class TicketCategory(db.Model):
    __tablename__ = "ticket_categories"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(80), nullable=False)
    code = db.Column(db.String(40), unique=True, nullable=False, index=True)
    sla_hours = db.Column(db.Integer, nullable=False, default=24)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


# =========================================================
# Billing
# =========================================================
class Invoice(db.Model):
    __tablename__ = "invoices"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)

    # INV-<6 digits> (single) or INV-<yyyym>-<batch>-<n> (billing cycle)
    invoice_number = db.Column(db.String(40), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    # pending / paid / overdue / cancelled
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)

    issued_date = db.Column(db.DateTime, nullable=False, default=utcnow_naive, index=True)
    due_date = db.Column(db.DateTime, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number} status={self.status}>"


class PaymentMethod(db.Model):
    __tablename__ = "payment_methods"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)

    # credit_card / bank_transfer
    type = db.Column(db.String(20), nullable=False)
    last_four = db.Column(db.String(4), nullable=True)
    expiry_date = db.Column(db.String(7), nullable=True)
    bank_name = db.Column(db.String(80), nullable=True)

    # at most one true per customer (enforced at write time)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


# =========================================================
# Network inventory
# =========================================================
class NetworkDevice(db.Model):
    __tablename__ = "network_devices"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # nullable: core infrastructure is not assigned to a customer
    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)

    name = db.Column(db.String(120), nullable=False, index=True)
    ip_address = db.Column(db.String(45), nullable=False)
    # router / switch / olt / server / cpe / other
    type = db.Column(db.String(20), nullable=False, default="other")
    # online / offline / warning / maintenance
    status = db.Column(db.String(20), nullable=False, default="online", index=True)

    location = db.Column(db.String(120), nullable=True)
    model = db.Column(db.String(80), nullable=True)
    serial_number = db.Column(db.String(80), nullable=True)
    firmware_version = db.Column(db.String(40), nullable=True)
    mac_address = db.Column(db.String(30), nullable=True)
    vlan_id = db.Column(db.String(10), nullable=True)
    pppoe_username = db.Column(db.String(60), nullable=True)

    # bumped on every mutation
    last_check = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


class NetworkInterface(db.Model):
    __tablename__ = "network_interfaces"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    device_id = db.Column(db.String(36), db.ForeignKey("network_devices.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(40), nullable=False)  # ether1, wlan0
    ip_address = db.Column(db.String(45), nullable=True)
    mac_address = db.Column(db.String(30), nullable=True)
    status = db.Column(db.String(10), nullable=False, default="up")  # up / down
    type = db.Column(db.String(20), nullable=True, default="ethernet")

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


# =========================================================
# Audit Logs (append-only)
# =========================================================
class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    # create / update / delete / login / system
    action = db.Column(db.String(20), nullable=False, index=True)
    entity = db.Column(db.String(40), nullable=False, index=True)
    entity_id = db.Column(db.String(36), nullable=True, index=True)
    details = db.Column(db.Text, nullable=True)
    performed_by = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<AuditLog id={self.id} action={self.action} entity={self.entity}:{self.entity_id}>"


# =========================================================
# System settings (key/value)
# =========================================================
class SystemSetting(db.Model):
    __tablename__ = "system_settings"

    key = db.Column(db.String(60), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    updated_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


# =========================================================
# IP address plan / monitoring
# =========================================================
class Subnet(db.Model):
    __tablename__ = "subnets"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(120), nullable=False)
    cidr = db.Column(db.String(43), nullable=False, index=True)  # 192.168.1.0/24
    gateway = db.Column(db.String(45), nullable=True)
    vlan_id = db.Column(db.String(10), nullable=True)
    location = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


class NetworkAlert(db.Model):
    __tablename__ = "network_alerts"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    device_name = db.Column(db.String(120), nullable=False)
    # critical / warning / info
    severity = db.Column(db.String(10), nullable=False, default="info", index=True)
    message = db.Column(db.Text, nullable=False)
    source = db.Column(db.String(60), nullable=True)  # snmp, syslog, manual

    timestamp = db.Column(db.DateTime, default=utcnow_naive, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


# =========================================================
# Warehouse stock
# =========================================================
class InventoryItem(db.Model):
    __tablename__ = "inventory_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(120), nullable=False, index=True)
    sku = db.Column(db.String(60), nullable=False, index=True)
    category = db.Column(db.String(40), nullable=False, default="Device")  # Device, Cable, Accessory, Tool

    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit = db.Column(db.String(20), nullable=False, default="pcs")  # pcs, meters, box
    min_quantity = db.Column(db.Integer, nullable=False, default=0)
    cost_price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)

    location = db.Column(db.String(120), nullable=True)  # Shelf A1, Van 2
    description = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku} qty={self.quantity}>"


# =========================================================
# Organization / knowledge base
# =========================================================
class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(80), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(120), nullable=True)  # HQ - Floor 2
    manager_name = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)


class KnowledgeArticle(db.Model):
    __tablename__ = "knowledge_articles"

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(60), nullable=False, index=True)  # Troubleshooting, Billing
    tags = db.Column(db.JSON, nullable=False, default=list)
    author_name = db.Column(db.String(120), nullable=False)

    views = db.Column(db.Integer, nullable=False, default=0)
    is_published = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow_naive, nullable=False)
