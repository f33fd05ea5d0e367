"""create voters and ballots

Revision ID: 3a7c1e9b5d20
Revises: 
Create Date: 2026-10-17 09:12:44.208115

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3a7c1e9b5d20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('voters',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('code', sa.String(length=50), nullable=True),
    sa.Column('phone', sa.String(length=20), nullable=True),
    sa.Column('name', sa.String(length=200), nullable=False),
    sa.Column('used', sa.Boolean(), nullable=False),
    sa.Column('used_at', sa.DateTime(), nullable=True),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('code'),
    sa.UniqueConstraint('phone')
    )
    op.create_table('ballots',
    sa.Column('id', sa.String(length=32), nullable=False),
    sa.Column('voter_ref', sa.String(length=50), nullable=False),
    sa.Column('voter_name', sa.String(length=200), nullable=True),
    sa.Column('selections', sa.JSON(), nullable=False),
    sa.Column('note', sa.Text(), nullable=True),
    sa.Column('ip', sa.String(length=64), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('voter_ref')
    )


def downgrade():
    op.drop_table('ballots')
    op.drop_table('voters')
