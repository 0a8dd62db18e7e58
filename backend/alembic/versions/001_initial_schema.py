"""Initial seed vault schema

Revision ID: 001
Create Date: 2026-03-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

JSONB = postgresql.JSONB(astext_type=sa.Text())


def upgrade() -> None:
    # Categories drive the sequential seed IDs (TM1, TM2, ...)
    op.create_table(
        'seed_categories',
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('prefix', sa.String(10), nullable=False),
        sa.PrimaryKeyConstraint('name'),
        sa.UniqueConstraint('prefix', name='uq_seed_categories_prefix'),
    )

    op.create_table(
        'seed_inventory',
        sa.Column('id', sa.String(20), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('variety_name', sa.String(200), nullable=False),
        sa.Column('vendor', sa.String(200), nullable=True),
        sa.Column('species', sa.String(200), nullable=True),
        sa.Column('days_to_maturity', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('images', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('primary_image_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('thumbnail', sa.String(500), nullable=True),
        sa.Column('out_of_stock', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('companion_plants', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('seed_depth', sa.String(100), nullable=True),
        sa.Column('plant_spacing', sa.String(100), nullable=True),
        sa.Column('row_spacing', sa.String(100), nullable=True),
        sa.Column('germination_days', sa.String(100), nullable=True),
        sa.Column('sunlight', sa.String(100), nullable=True),
        sa.Column('lifecycle', sa.String(100), nullable=True),
        sa.Column('cold_stratification', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('stratification_days', sa.Integer(), nullable=True),
        sa.Column('light_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('scoville_rating', sa.Integer(), nullable=True),
        sa.Column('tomato_type', sa.String(50), nullable=True),
        sa.Column('parent_id_female', sa.String(20), nullable=True),
        sa.Column('parent_id_male', sa.String(20), nullable=True),
        sa.Column('generation', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_seed_inventory_category', 'seed_inventory', ['category'])
    op.create_index('ix_seed_inventory_variety_name', 'seed_inventory', ['variety_name'])
    op.create_index('ix_seed_inventory_created_at', 'seed_inventory', ['created_at'])

    op.create_table(
        'seasons',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Planning'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('Planning', 'Active', 'Archived')", name='ck_seasons_status'),
    )
    op.create_index('ix_seasons_created_at', 'seasons', ['created_at'])

    op.create_table(
        'seedling_trays',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('tray_type', sa.String(100), nullable=True),
        sa.Column('sown_date', sa.Date(), nullable=False),
        sa.Column('first_germination_date', sa.Date(), nullable=True),
        sa.Column('first_planted_date', sa.Date(), nullable=True),
        sa.Column('heat_mat', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('humidity_dome', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('grow_light', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('potting_mix', sa.String(200), nullable=True),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('images', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('contents', JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('season_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['season_id'], ['seasons.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_seedling_trays_sown_date', 'seedling_trays', ['sown_date'])
    op.create_index('ix_seedling_trays_season_id', 'seedling_trays', ['season_id'])

    # Magic-link wishlists: the session id is the shareable token
    op.create_table(
        'wishlist_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('season_id', sa.Uuid(), nullable=False),
        sa.Column('list_name', sa.String(200), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['season_id'], ['seasons.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_wishlist_sessions_season_id', 'wishlist_sessions', ['season_id'])
    op.create_index('ix_wishlist_sessions_created_at', 'wishlist_sessions', ['created_at'])

    op.create_table(
        'wishlist_selections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('seed_id', sa.String(20), nullable=True),
        sa.Column('custom_request', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['session_id'], ['wishlist_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['seed_id'], ['seed_inventory.id'], ondelete='SET NULL', onupdate='CASCADE'
        ),
    )
    op.create_index('ix_wishlist_selections_session_id', 'wishlist_selections', ['session_id'])
    op.create_index('ix_wishlist_selections_seed_id', 'wishlist_selections', ['seed_id'])


def downgrade() -> None:
    op.drop_table('wishlist_selections')
    op.drop_table('wishlist_sessions')
    op.drop_table('seedling_trays')
    op.drop_table('seasons')
    op.drop_table('seed_inventory')
    op.drop_table('seed_categories')
