"""Create retail_sales table

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Required fields stay nullable; the cleaning pass removes incomplete rows.
    op.create_table(
        'retail_sales',
        sa.Column('transaction_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('sale_date', sa.Date(), nullable=True),
        sa.Column('sale_time', sa.Time(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(15), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(15), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('price_per_unit', sa.Numeric(10, 2), nullable=True),
        sa.Column('cogs', sa.Numeric(10, 2), nullable=True),
        sa.PrimaryKeyConstraint('transaction_id')
    )
    op.create_index(op.f('ix_retail_sales_sale_date'), 'retail_sales', ['sale_date'], unique=False)
    op.create_index(op.f('ix_retail_sales_category'), 'retail_sales', ['category'], unique=False)
    op.create_index(op.f('ix_retail_sales_customer_id'), 'retail_sales', ['customer_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_retail_sales_customer_id'), table_name='retail_sales')
    op.drop_index(op.f('ix_retail_sales_category'), table_name='retail_sales')
    op.drop_index(op.f('ix_retail_sales_sale_date'), table_name='retail_sales')
    op.drop_table('retail_sales')
