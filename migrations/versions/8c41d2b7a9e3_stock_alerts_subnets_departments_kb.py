"""Add inventory_items, network_alerts, subnets, departments, knowledge_articles

Revision ID: 8c41d2b7a9e3
Revises: 3f9a1c2d7e01
Create Date: 2026-10-18 15:40:12.518203
"""
from alembic import op
import sqlalchemy as sa

revision = "8c41d2b7a9e3"
down_revision = "3f9a1c2d7e01"
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _stamp(name):
    return sa.Column(name, sa.DateTime(), nullable=False, server_default=sa.func.now())


def upgrade():
    op.create_table(
        "inventory_items",
        _id(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("sku", sa.String(length=60), nullable=False),
        sa.Column("category", sa.String(length=40), nullable=False, server_default="Device"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="pcs"),
        sa.Column("min_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("location", sa.String(length=120), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _stamp("updated_at"),
    )
    op.create_index("ix_inventory_items_name", "inventory_items", ["name"], unique=False)
    op.create_index("ix_inventory_items_sku", "inventory_items", ["sku"], unique=False)

    op.create_table(
        "network_alerts",
        _id(),
        sa.Column("device_name", sa.String(length=120), nullable=False),
        sa.Column("severity", sa.String(length=10), nullable=False, server_default="info"),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("source", sa.String(length=60), nullable=True),
        _stamp("timestamp"),
        _stamp("created_at"),
    )
    op.create_index("ix_network_alerts_severity", "network_alerts", ["severity"], unique=False)
    op.create_index("ix_network_alerts_timestamp", "network_alerts", ["timestamp"], unique=False)

    op.create_table(
        "subnets",
        _id(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("cidr", sa.String(length=43), nullable=False),
        sa.Column("gateway", sa.String(length=45), nullable=True),
        sa.Column("vlan_id", sa.String(length=10), nullable=True),
        sa.Column("location", sa.String(length=120), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _stamp("created_at"),
    )
    op.create_index("ix_subnets_cidr", "subnets", ["cidr"], unique=False)

    op.create_table(
        "departments",
        _id(),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=120), nullable=True),
        sa.Column("manager_name", sa.String(length=120), nullable=True),
        _stamp("created_at"),
    )
    op.create_index("ix_departments_name", "departments", ["name"], unique=False)

    op.create_table(
        "knowledge_articles",
        _id(),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=60), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("author_name", sa.String(length=120), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        _stamp("created_at"),
        _stamp("updated_at"),
    )
    op.create_index("ix_knowledge_articles_category", "knowledge_articles", ["category"], unique=False)
    op.create_index("ix_knowledge_articles_created_at", "knowledge_articles", ["created_at"], unique=False)


def downgrade():
    op.drop_index("ix_knowledge_articles_created_at", table_name="knowledge_articles")
    op.drop_index("ix_knowledge_articles_category", table_name="knowledge_articles")
    op.drop_table("knowledge_articles")

    op.drop_index("ix_departments_name", table_name="departments")
    op.drop_table("departments")

    op.drop_index("ix_subnets_cidr", table_name="subnets")
    op.drop_table("subnets")

    op.drop_index("ix_network_alerts_timestamp", table_name="network_alerts")
    op.drop_index("ix_network_alerts_severity", table_name="network_alerts")
    op.drop_table("network_alerts")

    op.drop_index("ix_inventory_items_sku", table_name="inventory_items")
    op.drop_index("ix_inventory_items_name", table_name="inventory_items")
    op.drop_table("inventory_items")
