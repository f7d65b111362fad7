"""Baseline migration - Clients, contacts and forms

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates the client (tenant) tables, contact links with capability flags,
service tags, site check snapshots, and the form builder tables.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create portal tables."""

    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Clients
    # ==========================================================================
    op.execute('''
        CREATE TABLE clients (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            company VARCHAR(255),
            website_url VARCHAR(500),
            stripe_customer_id VARCHAR(255),
            umami_site_id VARCHAR(255),
            uptime_kuma_monitor_id VARCHAR(255),
            notes TEXT,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            hidden_features JSON NOT NULL DEFAULT '[]',
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_clients_active ON clients(is_active)')

    # ==========================================================================
    # Client contacts
    # ==========================================================================
    op.execute('''
        CREATE TABLE client_contacts (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            external_user_id VARCHAR(255),
            email VARCHAR(320) NOT NULL,
            name VARCHAR(255) NOT NULL,
            role_label VARCHAR(100),
            can_dashboard BOOLEAN NOT NULL DEFAULT TRUE,
            can_billing BOOLEAN NOT NULL DEFAULT TRUE,
            can_analytics BOOLEAN NOT NULL DEFAULT TRUE,
            can_uptime BOOLEAN NOT NULL DEFAULT TRUE,
            can_support BOOLEAN NOT NULL DEFAULT TRUE,
            can_site_health BOOLEAN NOT NULL DEFAULT TRUE,
            is_primary BOOLEAN NOT NULL DEFAULT FALSE,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_client_contacts_client_user UNIQUE (client_id, external_user_id),
            CONSTRAINT uq_client_contacts_client_email UNIQUE (client_id, email)
        )
    ''')
    op.execute('CREATE INDEX idx_client_contacts_user ON client_contacts(external_user_id)')
    op.execute('CREATE INDEX idx_client_contacts_email ON client_contacts(email)')

    # ==========================================================================
    # Services and site checks
    # ==========================================================================
    op.execute('''
        CREATE TABLE client_services (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            type VARCHAR(50) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_client_services_client_type UNIQUE (client_id, type)
        )
    ''')

    op.execute('''
        CREATE TABLE site_checks (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            client_id UUID NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
            performance_score INTEGER,
            accessibility_score INTEGER,
            seo_score INTEGER,
            best_practices_score INTEGER,
            ssl_valid BOOLEAN,
            ssl_issuer VARCHAR(255),
            ssl_expires_at TIMESTAMPTZ,
            checked_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_site_checks_client_checked ON site_checks(client_id, checked_at)')

    # ==========================================================================
    # Forms
    # ==========================================================================
    op.execute('''
        CREATE TABLE forms (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(150) NOT NULL,
            slug VARCHAR(150) UNIQUE NOT NULL,
            description TEXT,
            fields JSON NOT NULL DEFAULT '[]',
            settings JSON NOT NULL DEFAULT '{}',
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE form_submissions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            form_id UUID NOT NULL REFERENCES forms(id) ON DELETE CASCADE,
            data JSON NOT NULL DEFAULT '{}',
            metadata JSON NOT NULL DEFAULT '{}',
            status VARCHAR(20) NOT NULL DEFAULT 'NEW',
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_form_submissions_form_created ON form_submissions(form_id, created_at)')
    op.execute('CREATE INDEX idx_form_submissions_status ON form_submissions(status)')

    # ==========================================================================
    # updated_at trigger
    # ==========================================================================
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')
    for table in ('clients', 'client_contacts', 'forms'):
        op.execute(f'''
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
        ''')


def downgrade() -> None:
    """Drop all portal tables."""

    for table in ('forms', 'client_contacts', 'clients'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')

    op.execute('DROP TABLE IF EXISTS form_submissions')
    op.execute('DROP TABLE IF EXISTS forms')
    op.execute('DROP TABLE IF EXISTS site_checks')
    op.execute('DROP TABLE IF EXISTS client_services')
    op.execute('DROP TABLE IF EXISTS client_contacts')
    op.execute('DROP TABLE IF EXISTS clients')
