"""Initial MailDrain schema."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the mailbox lock table."""
    op.create_table(
        "mailbox_locks",
        sa.Column("tenantidmailbox", sa.String(length=255), primary_key=True),
        sa.Column("expiration_time", sa.Float(), nullable=False),
    )
    op.create_index(
        "idx_mailbox_locks_expiration",
        "mailbox_locks",
        ["expiration_time"],
    )


def downgrade() -> None:
    op.drop_index("idx_mailbox_locks_expiration", table_name="mailbox_locks")
    op.drop_table("mailbox_locks")
