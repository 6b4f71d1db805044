"""initial schema: clientes, cobrancas, parcelamentos, sync_failures

Revision ID: 3f9c1d2e7a40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1d2e7a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the mirrored record tables and the failure log."""
    op.create_table('clientes',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('cpf_cnpj', sa.String(length=20), nullable=True),
        sa.Column('telefone', sa.String(length=30), nullable=True),
        sa.Column('celular', sa.String(length=30), nullable=True),
        sa.Column('endereco', sa.String(length=255), nullable=True),
        sa.Column('numero_endereco', sa.String(length=30), nullable=True),
        sa.Column('complemento', sa.String(length=255), nullable=True),
        sa.Column('bairro', sa.String(length=255), nullable=True),
        sa.Column('cidade_nome', sa.String(length=255), nullable=True),
        sa.Column('estado', sa.String(length=2), nullable=True),
        sa.Column('cep', sa.String(length=10), nullable=True),
        sa.Column('pais', sa.String(length=100), nullable=True),
        sa.Column('tipo_pessoa', sa.String(length=20), nullable=True),
        sa.Column('emails_adicionais', sa.Text(), nullable=True),
        sa.Column('referencia_externa', sa.String(length=255), nullable=True),
        sa.Column('notificacao_desativada', sa.Boolean(), nullable=False),
        sa.Column('observacoes', sa.Text(), nullable=True),
        sa.Column('estrangeiro', sa.Boolean(), nullable=False),
        sa.Column('deletado', sa.Boolean(), nullable=False),
        sa.Column('data_criacao', sa.Date(), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.Column('atualizado_em', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clientes_cpf_cnpj', 'clientes', ['cpf_cnpj'])

    op.create_table('cobrancas',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('cliente_id', sa.String(length=64), nullable=False),
        sa.Column('parcelamento_id', sa.String(length=64), nullable=True),
        sa.Column('numero_parcela', sa.Integer(), nullable=True),
        sa.Column('valor', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('valor_liquido', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('status', sa.String(length=40), nullable=False),
        sa.Column('forma_cobranca', sa.String(length=30), nullable=True),
        sa.Column('data_vencimento', sa.Date(), nullable=False),
        sa.Column('data_vencimento_original', sa.Date(), nullable=True),
        sa.Column('data_pagamento', sa.Date(), nullable=True),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('url_fatura', sa.String(length=500), nullable=True),
        sa.Column('url_boleto', sa.String(length=500), nullable=True),
        sa.Column('referencia_externa', sa.String(length=255), nullable=True),
        sa.Column('desconto', sa.JSON(), nullable=True),
        sa.Column('multa', sa.JSON(), nullable=True),
        sa.Column('juros', sa.JSON(), nullable=True),
        sa.Column('deletado', sa.Boolean(), nullable=False),
        sa.Column('data_criacao', sa.Date(), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.Column('atualizado_em', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cobrancas_cliente_id', 'cobrancas', ['cliente_id'])
    op.create_index('ix_cobrancas_parcelamento_id', 'cobrancas', ['parcelamento_id'])
    op.create_index('ix_cobrancas_status', 'cobrancas', ['status'])
    op.create_index('ix_cobrancas_data_vencimento', 'cobrancas', ['data_vencimento'])

    op.create_table('parcelamentos',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('cliente_id', sa.String(length=64), nullable=False),
        sa.Column('valor', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('valor_liquido', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('valor_parcela', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('quantidade_parcelas', sa.Integer(), nullable=True),
        sa.Column('forma_cobranca', sa.String(length=30), nullable=True),
        sa.Column('data_pagamento', sa.Date(), nullable=True),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('dia_vencimento', sa.Integer(), nullable=True),
        sa.Column('url_boleto', sa.String(length=500), nullable=True),
        sa.Column('deletado', sa.Boolean(), nullable=False),
        sa.Column('data_criacao', sa.Date(), nullable=True),
        sa.Column('criado_em', sa.DateTime(), nullable=False),
        sa.Column('atualizado_em', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_parcelamentos_cliente_id', 'parcelamentos', ['cliente_id'])

    op.create_table('sync_failures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('record_kind', sa.Enum('CUSTOMER', 'PAYMENT', 'INSTALLMENT', name='recordkind'), nullable=False),
        sa.Column('asaas_id', sa.String(length=64), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=False),
        sa.Column('error_type', sa.String(length=100), nullable=False),
        sa.Column('retry_count', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'RESOLVED', 'PERMANENT', name='syncfailurestatus'), nullable=False),
        sa.Column('failed_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    # One pending failure per record; resolved and permanent rows are history
    op.create_index(
        'uq_sync_failures_pending',
        'sync_failures',
        ['record_kind', 'asaas_id'],
        unique=True,
        sqlite_where=sa.text("status = 'PENDING'"),
        postgresql_where=sa.text("status = 'PENDING'"),
    )


def downgrade() -> None:
    """Drop every table."""
    op.drop_index('uq_sync_failures_pending', table_name='sync_failures')
    op.drop_table('sync_failures')
    op.drop_index('ix_parcelamentos_cliente_id', table_name='parcelamentos')
    op.drop_table('parcelamentos')
    op.drop_index('ix_cobrancas_data_vencimento', table_name='cobrancas')
    op.drop_index('ix_cobrancas_status', table_name='cobrancas')
    op.drop_index('ix_cobrancas_parcelamento_id', table_name='cobrancas')
    op.drop_index('ix_cobrancas_cliente_id', table_name='cobrancas')
    op.drop_table('cobrancas')
    op.drop_index('ix_clientes_cpf_cnpj', table_name='clientes')
    op.drop_table('clientes')
    # Drop the enum types
    sa.Enum(name='syncfailurestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='recordkind').drop(op.get_bind(), checkfirst=True)
