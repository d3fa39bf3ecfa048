"""create chat_message

Revision ID: 5c2a9d7e41b0
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2a9d7e41b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    # Databases built by `flask db-reset` already have the table
    if 'chat_message' in insp.get_table_names():
        return
    op.create_table(
        'chat_message',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('topic', sa.String(length=128), nullable=False),
        sa.Column('sender_id', sa.String(length=128), nullable=False),
        sa.Column('sender_nickname', sa.String(length=64), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('chat_message') as batch_op:
        batch_op.create_index(batch_op.f('ix_chat_message_topic'), ['topic'], unique=False)
        batch_op.create_index(batch_op.f('ix_chat_message_timestamp'), ['timestamp'], unique=False)


def downgrade():
    with op.batch_alter_table('chat_message') as batch_op:
        batch_op.drop_index(batch_op.f('ix_chat_message_timestamp'))
        batch_op.drop_index(batch_op.f('ix_chat_message_topic'))
    op.drop_table('chat_message')
