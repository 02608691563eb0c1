"""Initial schema: catalog, sales, purchasing, document sequences

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01

This migration adds:
1. Reference data: publishers, sales_associates, expeditions
2. Catalog: books (price + stock counter)
3. Sales: sales_transactions with items, payments, installments, shippings
4. Purchasing: purchase_transactions with items
5. document_sequences (per prefix, per day numbering)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20260301_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. REFERENCE DATA
    # ==========================================================================
    op.create_table('publishers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table('sales_associates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('payment_type', sa.String(length=1), nullable=False, server_default='T'),
        sa.Column('discount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table('expeditions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. CATALOG
    # ==========================================================================
    op.create_table('books',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('year', sa.String(length=16), nullable=True),
        sa.Column('author', sa.String(length=255), nullable=True),
        sa.Column('isbn', sa.String(length=32), nullable=True),
        sa.Column('publisher_id', sa.Integer(), nullable=True),
        sa.Column('price', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_books_stock_non_negative'),
        sa.CheckConstraint('price >= 0', name='ck_books_price_non_negative'),
        sa.ForeignKeyConstraint(['publisher_id'], ['publishers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('isbn'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('books', schema=None) as batch_op:
        batch_op.create_index('ix_books_name', ['name'], unique=False)
        batch_op.create_index(batch_op.f('ix_books_publisher_id'), ['publisher_id'], unique=False)

    # ==========================================================================
    # 3. SALES
    # ==========================================================================
    op.create_table('sales_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_no', sa.String(length=32), nullable=False),
        sa.Column('sales_associate_id', sa.Integer(), nullable=False),
        sa.Column('expedition_id', sa.Integer(), nullable=True),
        sa.Column('payment_type', sa.String(length=1), nullable=False, server_default='T'),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.CheckConstraint("payment_type IN ('T', 'K')", name='ck_sales_transactions_payment_type'),
        sa.ForeignKeyConstraint(['sales_associate_id'], ['sales_associates.id'], ),
        sa.ForeignKeyConstraint(['expedition_id'], ['expeditions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_transactions_sales_associate_id'), ['sales_associate_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_transactions_expedition_id'), ['expedition_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_transactions_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_transactions_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_sales_transactions_status_created', ['status', 'created_at'], unique=False)

    op.create_table('sales_transaction_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.Column('subtotal', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sales_items_quantity_positive'),
        sa.ForeignKeyConstraint(['transaction_id'], ['sales_transactions.id'], ),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id', 'book_id', name='uq_sales_items_transaction_book'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales_transaction_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_transaction_items_transaction_id'), ['transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_transaction_items_book_id'), ['book_id'], unique=False)

    op.create_table('payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sales_transaction_id', sa.Integer(), nullable=False),
        sa.Column('payment_no', sa.String(length=32), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_payments_amount_positive'),
        sa.ForeignKeyConstraint(['sales_transaction_id'], ['sales_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_payments_sales_transaction_id'), ['sales_transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_payments_payment_date'), ['payment_date'], unique=False)

    op.create_table('sales_transaction_installments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('installment_no', sa.String(length=32), nullable=False),
        sa.Column('installment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_installments_amount_positive'),
        sa.ForeignKeyConstraint(['transaction_id'], ['sales_transactions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('installment_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales_transaction_installments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_transaction_installments_transaction_id'), ['transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_transaction_installments_installment_date'), ['installment_date'], unique=False)

    op.create_table('shippings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sales_transaction_id', sa.Integer(), nullable=False),
        sa.Column('expedition_id', sa.Integer(), nullable=False),
        sa.Column('tracking_no', sa.String(length=64), nullable=True),
        sa.Column('total_amount', sa.BigInteger(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint('total_amount >= 0', name='ck_shippings_amount_non_negative'),
        sa.ForeignKeyConstraint(['sales_transaction_id'], ['sales_transactions.id'], ),
        sa.ForeignKeyConstraint(['expedition_id'], ['expeditions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('shippings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_shippings_sales_transaction_id'), ['sales_transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_shippings_expedition_id'), ['expedition_id'], unique=False)

    # ==========================================================================
    # 4. PURCHASING
    # ==========================================================================
    op.create_table('purchase_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_no', sa.String(length=32), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('receipt_image_url', sa.String(length=512), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['publishers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_no'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_transactions_supplier_id'), ['supplier_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_transactions_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_transactions_created_at'), ['created_at'], unique=False)
        batch_op.create_index('ix_purchase_transactions_status_date', ['status', 'purchase_date'], unique=False)

    op.create_table('purchase_transaction_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_transaction_id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.Column('subtotal', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_purchase_items_quantity_positive'),
        sa.CheckConstraint('price >= 0', name='ck_purchase_items_price_non_negative'),
        sa.ForeignKeyConstraint(['purchase_transaction_id'], ['purchase_transactions.id'], ),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_transaction_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_transaction_items_purchase_transaction_id'), ['purchase_transaction_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_transaction_items_book_id'), ['book_id'], unique=False)

    # ==========================================================================
    # 5. DOCUMENT SEQUENCES
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(length=3), nullable=False),
        sa.Column('business_date', sa.String(length=8), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('prefix', 'business_date', name='uq_doc_sequences_prefix_date'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('document_sequences')

    with op.batch_alter_table('purchase_transaction_items', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_purchase_transaction_items_book_id'))
        batch_op.drop_index(batch_op.f('ix_purchase_transaction_items_purchase_transaction_id'))
    op.drop_table('purchase_transaction_items')

    with op.batch_alter_table('purchase_transactions', schema=None) as batch_op:
        batch_op.drop_index('ix_purchase_transactions_status_date')
        batch_op.drop_index(batch_op.f('ix_purchase_transactions_created_at'))
        batch_op.drop_index(batch_op.f('ix_purchase_transactions_status'))
        batch_op.drop_index(batch_op.f('ix_purchase_transactions_supplier_id'))
    op.drop_table('purchase_transactions')

    op.drop_table('shippings')
    op.drop_table('sales_transaction_installments')
    op.drop_table('payments')
    op.drop_table('sales_transaction_items')
    op.drop_table('sales_transactions')
    op.drop_table('books')
    op.drop_table('expeditions')
    op.drop_table('sales_associates')
    op.drop_table('publishers')
