"""Initial schema: customers, tickets, billing, network inventory, audit

Revision ID: 3f9a1c2d7e01
Revises:
Create Date: 2026-10-18 09:12:44.301822
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9a1c2d7e01"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at():
    return sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now())


def upgrade():
    op.create_table(
        "employees",
        _id(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="support"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("department", sa.String(length=80), nullable=True),
        sa.Column("avatar_url", sa.String(length=255), nullable=True),
        sa.Column("identity_number", sa.String(length=60), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("hire_date", sa.DateTime(), nullable=True),
        sa.Column("certifications", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)
    op.create_index("ix_employees_role", "employees", ["role"])
    op.create_index("ix_employees_status", "employees", ["status"])

    op.create_table(
        "plans",
        _id(),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("download_speed", sa.String(length=30), nullable=True),
        sa.Column("upload_speed", sa.String(length=30), nullable=True),
        _created_at(),
    )

    op.create_table(
        "customers",
        _id(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="residential"),
        sa.Column("identity_number", sa.String(length=60), nullable=True),
        sa.Column("company", sa.String(length=120), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("coordinates", sa.String(length=60), nullable=True),
        sa.Column("installation_status", sa.String(length=30), nullable=False, server_default="pending_survey"),
        sa.Column("odp_port", sa.String(length=40), nullable=True),
        sa.Column("survey_notes", sa.Text(), nullable=True),
        sa.Column("subscription_plan", sa.String(length=80), nullable=True),
        sa.Column("plan_id", sa.String(length=36), sa.ForeignKey("plans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("account_status", sa.String(length=20), nullable=False, server_default="lead"),
        _created_at(),
    )
    op.create_index("ix_customers_name", "customers", ["name"])
    op.create_index("ix_customers_email", "customers", ["email"])
    op.create_index("ix_customers_installation_status", "customers", ["installation_status"])
    op.create_index("ix_customers_plan_id", "customers", ["plan_id"])
    op.create_index("ix_customers_account_status", "customers", ["account_status"])

    op.create_table(
        "tickets",
        _id(),
        sa.Column("title", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("category", sa.String(length=40), nullable=False),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_escalated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("assigned_to", sa.String(length=120), nullable=True),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("root_cause", sa.String(length=120), nullable=True),
        _created_at(),
    )
    op.create_index("ix_tickets_status", "tickets", ["status"])
    op.create_index("ix_tickets_priority", "tickets", ["priority"])
    op.create_index("ix_tickets_category", "tickets", ["category"])
    op.create_index("ix_tickets_customer_id", "tickets", ["customer_id"])
    op.create_index("ix_tickets_assigned_to", "tickets", ["assigned_to"])
    op.create_index("ix_tickets_created_at", "tickets", ["created_at"])

    op.create_table(
        "ticket_comments",
        _id(),
        sa.Column("ticket_id", sa.String(length=36), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_name", sa.String(length=120), nullable=False),
        _created_at(),
    )
    op.create_index("ix_ticket_comments_ticket_id", "ticket_comments", ["ticket_id"])
    op.create_index("ix_ticket_comments_created_at", "ticket_comments", ["created_at"])

    op.create_table(
        "ticket_categories",
        _id(),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("code", sa.String(length=40), nullable=False),
        sa.Column("sla_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_ticket_categories_code", "ticket_categories", ["code"], unique=True)

    op.create_table(
        "invoices",
        _id(),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invoice_number", sa.String(length=40), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("issued_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("due_date", sa.DateTime(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        _created_at(),
    )
    op.create_index("ix_invoices_customer_id", "invoices", ["customer_id"])
    op.create_index("ix_invoices_invoice_number", "invoices", ["invoice_number"])
    op.create_index("ix_invoices_status", "invoices", ["status"])
    op.create_index("ix_invoices_issued_date", "invoices", ["issued_date"])

    op.create_table(
        "payment_methods",
        _id(),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("last_four", sa.String(length=4), nullable=True),
        sa.Column("expiry_date", sa.String(length=7), nullable=True),
        sa.Column("bank_name", sa.String(length=80), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_payment_methods_customer_id", "payment_methods", ["customer_id"])

    op.create_table(
        "network_devices",
        _id(),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="other"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="online"),
        sa.Column("location", sa.String(length=120), nullable=True),
        sa.Column("model", sa.String(length=80), nullable=True),
        sa.Column("serial_number", sa.String(length=80), nullable=True),
        sa.Column("firmware_version", sa.String(length=40), nullable=True),
        sa.Column("mac_address", sa.String(length=30), nullable=True),
        sa.Column("vlan_id", sa.String(length=10), nullable=True),
        sa.Column("pppoe_username", sa.String(length=60), nullable=True),
        sa.Column("last_check", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        _created_at(),
    )
    op.create_index("ix_network_devices_customer_id", "network_devices", ["customer_id"])
    op.create_index("ix_network_devices_name", "network_devices", ["name"])
    op.create_index("ix_network_devices_status", "network_devices", ["status"])

    op.create_table(
        "network_interfaces",
        _id(),
        sa.Column("device_id", sa.String(length=36), sa.ForeignKey("network_devices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=40), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("mac_address", sa.String(length=30), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="up"),
        sa.Column("type", sa.String(length=20), nullable=True),
        _created_at(),
    )
    op.create_index("ix_network_interfaces_device_id", "network_interfaces", ["device_id"])

    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("entity", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(length=120), nullable=False),
        _created_at(),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(length=60), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("system_settings")

    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_network_interfaces_device_id", table_name="network_interfaces")
    op.drop_table("network_interfaces")

    op.drop_index("ix_network_devices_status", table_name="network_devices")
    op.drop_index("ix_network_devices_name", table_name="network_devices")
    op.drop_index("ix_network_devices_customer_id", table_name="network_devices")
    op.drop_table("network_devices")

    op.drop_index("ix_payment_methods_customer_id", table_name="payment_methods")
    op.drop_table("payment_methods")

    op.drop_index("ix_invoices_issued_date", table_name="invoices")
    op.drop_index("ix_invoices_status", table_name="invoices")
    op.drop_index("ix_invoices_invoice_number", table_name="invoices")
    op.drop_index("ix_invoices_customer_id", table_name="invoices")
    op.drop_table("invoices")

    op.drop_index("ix_ticket_categories_code", table_name="ticket_categories")
    op.drop_table("ticket_categories")

    op.drop_index("ix_ticket_comments_created_at", table_name="ticket_comments")
    op.drop_index("ix_ticket_comments_ticket_id", table_name="ticket_comments")
    op.drop_table("ticket_comments")

    op.drop_index("ix_tickets_created_at", table_name="tickets")
    op.drop_index("ix_tickets_assigned_to", table_name="tickets")
    op.drop_index("ix_tickets_customer_id", table_name="tickets")
    op.drop_index("ix_tickets_category", table_name="tickets")
    op.drop_index("ix_tickets_priority", table_name="tickets")
    op.drop_index("ix_tickets_status", table_name="tickets")
    op.drop_table("tickets")

    op.drop_index("ix_customers_account_status", table_name="customers")
    op.drop_index("ix_customers_plan_id", table_name="customers")
    op.drop_index("ix_customers_installation_status", table_name="customers")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_index("ix_customers_name", table_name="customers")
    op.drop_table("customers")

    op.drop_table("plans")

    op.drop_index("ix_employees_status", table_name="employees")
    op.drop_index("ix_employees_role", table_name="employees")
    op.drop_index("ix_employees_email", table_name="employees")
    op.drop_table("employees")
