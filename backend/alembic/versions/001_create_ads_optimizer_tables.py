"""Create ads optimizer tables: campaign caches, config, pending actions, audit trail, runs, credentials.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def upgrade() -> None:
    conn = op.get_bind()
    existing = set(sa.inspect(conn).get_table_names())

    if "ads_campaigns" not in existing:
        op.create_table(
            "ads_campaigns",
            _uuid_pk(),
            sa.Column("campaign_id", sa.String(255), nullable=False, unique=True),
            sa.Column("name", sa.String(512), nullable=True),
            sa.Column("status", sa.String(50), nullable=True),
            sa.Column("objective", sa.String(100), nullable=True),
            sa.Column("daily_budget", sa.Float(), nullable=True),
            sa.Column("lifetime_budget", sa.Float(), nullable=True),
            sa.Column("impressions", sa.BigInteger(), nullable=True, server_default="0"),
            sa.Column("clicks", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("reach", sa.BigInteger(), nullable=True, server_default="0"),
            sa.Column("spend", sa.Float(), nullable=True, server_default="0"),
            sa.Column("cpc", sa.Float(), nullable=True),
            sa.Column("cpm", sa.Float(), nullable=True),
            sa.Column("ctr", sa.Float(), nullable=True),
            sa.Column("conversions", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("cost_per_result", sa.Float(), nullable=True, server_default="0"),
            sa.Column("synced_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )
        op.create_index("ix_ads_campaigns_status", "ads_campaigns", ["status"])

    if "google_ads_campaigns" not in existing:
        op.create_table(
            "google_ads_campaigns",
            _uuid_pk(),
            sa.Column("campaign_id", sa.String(255), nullable=False, unique=True),
            sa.Column("name", sa.String(512), nullable=True),
            sa.Column("status", sa.String(50), nullable=True),
            sa.Column("channel_type", sa.String(100), nullable=True),
            sa.Column("daily_budget", sa.Float(), nullable=True),
            sa.Column("impressions", sa.BigInteger(), nullable=True, server_default="0"),
            sa.Column("clicks", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("cost", sa.Float(), nullable=True, server_default="0"),
            sa.Column("ctr", sa.Float(), nullable=True),
            sa.Column("conversions", sa.Float(), nullable=True, server_default="0"),
            sa.Column("cost_per_conversion", sa.Float(), nullable=True, server_default="0"),
            sa.Column("conversion_rate", sa.Float(), nullable=True),
            sa.Column("synced_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )
        op.create_index("ix_google_ads_campaigns_status", "google_ads_campaigns", ["status"])

    if "ads_optimization_config" not in existing:
        op.create_table(
            "ads_optimization_config",
            _uuid_pk(),
            sa.Column("optimizer_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("auto_pause_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("auto_boost_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("approval_mode_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("target_cpa", sa.Float(), nullable=False, server_default="50"),
            sa.Column("max_cpa_multiplier", sa.Float(), nullable=False, server_default="3"),
            sa.Column("min_spend_to_evaluate", sa.Float(), nullable=False, server_default="50"),
            sa.Column("min_impressions_to_evaluate", sa.Integer(), nullable=False, server_default="1000"),
            sa.Column("budget_increase_pct", sa.Float(), nullable=False, server_default="20"),
            sa.Column("max_daily_budget", sa.Float(), nullable=False, server_default="200"),
            sa.Column("min_daily_budget", sa.Float(), nullable=True, server_default="10"),
            sa.Column("min_roas", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )

    if "ads_pending_actions" not in existing:
        op.create_table(
            "ads_pending_actions",
            _uuid_pk(),
            sa.Column("campaign_id", sa.String(255), nullable=False),
            sa.Column("campaign_name", sa.String(512), nullable=True),
            sa.Column("platform", sa.String(20), nullable=False, server_default="meta"),
            sa.Column("action_type", sa.String(50), nullable=False),
            sa.Column("ai_reasoning", sa.Text(), nullable=True),
            sa.Column("current_metrics", postgresql.JSON(astext_type=sa.Text()), nullable=True),
            sa.Column("proposed_changes", postgresql.JSON(astext_type=sa.Text()), nullable=True),
            sa.Column("status", sa.String(20), nullable=True, server_default="pending"),
            sa.Column("resolved_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )
        op.create_index("ix_ads_pending_actions_status", "ads_pending_actions", ["status"])
        op.create_index("ix_ads_pending_actions_created_at", "ads_pending_actions", ["created_at"])
        op.create_index(
            "uq_ads_pending_actions_open",
            "ads_pending_actions",
            ["campaign_id", "platform", "action_type"],
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
        )

    if "ads_agent_actions" not in existing:
        op.create_table(
            "ads_agent_actions",
            _uuid_pk(),
            sa.Column("action_type", sa.String(100), nullable=False),
            sa.Column("source", sa.String(50), nullable=False),
            sa.Column("campaign_id", sa.String(255), nullable=True),
            sa.Column("campaign_name", sa.String(512), nullable=True),
            sa.Column("platform", sa.String(20), nullable=True),
            sa.Column("status", sa.String(20), nullable=True, server_default="success"),
            sa.Column("details", postgresql.JSON(astext_type=sa.Text()), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )
        op.create_index("ix_ads_agent_actions_action_type", "ads_agent_actions", ["action_type"])
        op.create_index("ix_ads_agent_actions_source", "ads_agent_actions", ["source"])
        op.create_index("ix_ads_agent_actions_campaign", "ads_agent_actions", ["platform", "campaign_id"])
        op.create_index("ix_ads_agent_actions_created_at", "ads_agent_actions", ["created_at"])

    if "ads_optimizer_runs" not in existing:
        op.create_table(
            "ads_optimizer_runs",
            _uuid_pk(),
            sa.Column("platform", sa.String(20), nullable=False),
            sa.Column("trigger", sa.String(50), nullable=True, server_default="manual"),
            sa.Column("status", sa.String(20), nullable=True, server_default="running"),
            sa.Column("evaluated", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("paused", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("boosted", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("kept", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("skipped", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("pending_approval", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("approval_mode", sa.Boolean(), nullable=True),
            sa.Column("errors", postgresql.JSON(astext_type=sa.Text()), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("elapsed_ms", sa.Integer(), nullable=True),
            sa.Column("started_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_ads_optimizer_runs_started_at", "ads_optimizer_runs", ["started_at"])
        op.create_index("ix_ads_optimizer_runs_status", "ads_optimizer_runs", ["status"])

    if "meta_token_config" not in existing:
        op.create_table(
            "meta_token_config",
            _uuid_pk(),
            sa.Column("token_type", sa.String(20), nullable=False, unique=True),
            sa.Column("access_token", sa.Text(), nullable=False),
            sa.Column("expires_at", sa.DateTime(), nullable=True),
            sa.Column("last_refreshed_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )

    if "google_ads_config" not in existing:
        op.create_table(
            "google_ads_config",
            _uuid_pk(),
            sa.Column("customer_id", sa.String(50), nullable=True),
            sa.Column("client_id", sa.String(512), nullable=True),
            sa.Column("client_secret", sa.Text(), nullable=True),
            sa.Column("refresh_token", sa.Text(), nullable=True),
            sa.Column("developer_token", sa.Text(), nullable=True),
            sa.Column("is_connected", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("last_token_refresh", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
        )


def downgrade() -> None:
    for table in (
        "google_ads_config",
        "meta_token_config",
        "ads_optimizer_runs",
        "ads_agent_actions",
        "ads_pending_actions",
        "ads_optimization_config",
        "google_ads_campaigns",
        "ads_campaigns",
    ):
        op.drop_table(table)
