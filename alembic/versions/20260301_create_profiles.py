"""create profiles table

Revision ID: 20260301_create_profiles
Revises: 
Create Date: 2026-03-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20260301_create_profiles'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('username', sa.String(20), nullable=False),
        sa.Column('address', sa.String(128), nullable=False),
        sa.Column('chain', sa.String(8), nullable=False),
        sa.Column('created_at', sa.BigInteger, nullable=False),
        sa.Column('logo_url', sa.Text),
        sa.Column('socials', sa.JSON),
    )
    # Usernames are unique regardless of case
    conn = op.get_bind()
    conn.execute(sa.text("CREATE UNIQUE INDEX IF NOT EXISTS ux_profiles_username_lower ON profiles (lower(username))"))

def downgrade():
    op.drop_index('ux_profiles_username_lower', table_name='profiles')
    op.drop_table('profiles')
