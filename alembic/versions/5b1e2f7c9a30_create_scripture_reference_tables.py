"""create collections, documents and scripture reference tables

Revision ID: 5b1e2f7c9a30
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b1e2f7c9a30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'collections',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=True,
                  comment='unorganized for the per-owner unassigned collection'),
        sa.Column('is_unassigned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'slug', name='uq_collection_owner_slug'),
    )
    op.create_index('ix_collections_owner_id', 'collections', ['owner_id'])

    op.create_table(
        'documents',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False, server_default='plain',
                  comment='plain, reference or other'),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('body', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_documents_owner_id', 'documents', ['owner_id'])

    op.create_table(
        'document_collections',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('document_id', sa.UUID(), nullable=False),
        sa.Column('collection_id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['documents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_id', 'collection_id', name='uq_document_collection'),
    )
    op.create_index('ix_document_collections_document_id', 'document_collections', ['document_id'])

    op.create_table(
        'reference_records',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('normalized_key', sa.String(), nullable=False,
                  comment='Canonical citation, e.g. John 3:16-18'),
        sa.Column('document_id', sa.UUID(), nullable=False),
        sa.Column('book', sa.String(), nullable=False),
        sa.Column('chapter', sa.Integer(), nullable=False),
        sa.Column('verse_start', sa.Integer(), nullable=False),
        sa.Column('verse_end', sa.Integer(), nullable=True),
        sa.Column('translation', sa.String(), nullable=False, server_default='NET'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['documents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'normalized_key', name='uq_reference_owner_key'),
        comment='One reference document per owner and normalized citation'
    )
    op.create_index('ix_reference_records_owner_id', 'reference_records', ['owner_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_reference_records_owner_id', table_name='reference_records')
    op.drop_table('reference_records')
    op.drop_index('ix_document_collections_document_id', table_name='document_collections')
    op.drop_table('document_collections')
    op.drop_index('ix_documents_owner_id', table_name='documents')
    op.drop_table('documents')
    op.drop_index('ix_collections_owner_id', table_name='collections')
    op.drop_table('collections')
