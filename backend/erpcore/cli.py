# Overview: Flask CLI command groups for tenant bootstrap and document numbering.

# backend/erpcore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Company management (MULTI-TENANT):
# - python -m flask companies list
#   List all companies (tenants) with their branch counts.
# - python -m flask companies create --name "Acme Corp" --code "ACME" [--timezone "Asia/Kolkata"]
#   Create a new company (tenant).
# - python -m flask companies add-branch --company-id 1 --name "Pune" [--code "PUN"]
#   Add a branch to a company.
#
# Document numbering:
# - python -m flask numbering set --company-id 1 --type INVOICE --prefix INV --separator "#" --digits 4
#   Set a company's prefix/separator/width for a document type.
# - python -m flask numbering next --company-id 1 --type GRN
#   Allocate (and consume) the next number and print it.
#
# Development tokens:
# - python -m flask tokens issue --company-id 1 --user-id 7 [--role admin]
#   Print a signed bearer token for local testing.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CompanyBranch
from .services import company_service, numbering_service
from .services.company_service import CompanyError
from .services.document_service import SequenceConflictError, next_document_number
from .services.numbering_service import UnknownDocumentTypeError
from .services.security_service import create_access_token
from .validation import ValidationError


# =============================================================================
# COMPANY MANAGEMENT COMMANDS (MULTI-TENANT)
# =============================================================================

@click.group('companies')
def companies_group():
    """Company (tenant) management commands."""


@companies_group.command('list')
@with_appcontext
def list_companies():
    """List all companies."""
    companies = company_service.list_companies()

    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<12} {'Timezone':<20} {'Active':<7} {'Branches'}")
    click.echo("="*80)

    for company in companies:
        branch_count = db.session.query(CompanyBranch).filter_by(tenant_id=company.id).count()
        active_str = "Yes" if company.is_active else "No"

        click.echo(
            f"{company.id:<5} {company.name:<30} {company.code or '-':<12} "
            f"{company.timezone or '-':<20} {active_str:<7} {branch_count}"
        )

    click.echo("="*80 + "\n")


@companies_group.command('create')
@click.option('--name', required=True, help='Company name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--timezone', default=None, help='IANA timezone, e.g. Asia/Kolkata')
@with_appcontext
def create_company_cli(name, code, timezone):
    """Create a new company (tenant)."""
    try:
        company = company_service.create_company(name, code, timezone=timezone)
    except CompanyError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created company: {company.name} (ID: {company.id}, Code: {company.code})")


@companies_group.command('add-branch')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--name', required=True, help='Branch name')
@click.option('--code', help='Branch code (unique within company)')
@with_appcontext
def add_branch_cli(company_id, name, code):
    """Add a branch to a company."""
    try:
        branch = company_service.add_branch(company_id, name, code)
    except CompanyError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}) in company {company_id}")


# =============================================================================
# DOCUMENT NUMBERING COMMANDS
# =============================================================================

@click.group('numbering')
def numbering_group():
    """Document numbering configuration and allocation."""


@numbering_group.command('set')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--type', 'document_type', required=True, help='Document type, e.g. INVOICE')
@click.option('--prefix', required=True, help='Number prefix')
@click.option('--separator', default=None, help='Separator between prefix and number (default "-")')
@click.option('--digits', type=int, default=None, help='Zero-pad width (default 3)')
@with_appcontext
def set_numbering_cli(company_id, document_type, prefix, separator, digits):
    """Set a company's numbering format for a document type."""
    try:
        numbering_service.set_numbering_config(
            company_id,
            document_type,
            prefix=prefix,
            separator=separator,
            digit_width=digits,
        )
        fmt = numbering_service.get_numbering_format(company_id, document_type)
    except (ValidationError, UnknownDocumentTypeError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS {fmt.document_type} numbering for company {company_id}: {fmt.render(1)}, ...")


@numbering_group.command('next')
@click.option('--company-id', type=int, required=True, help='Company ID')
@click.option('--type', 'document_type', required=True, help='Document type, e.g. GRN')
@with_appcontext
def next_number_cli(company_id, document_type):
    """Allocate the next number for a document type. The number is consumed."""
    try:
        number = next_document_number(company_id, document_type)
    except (UnknownDocumentTypeError, SequenceConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(number)


# =============================================================================
# DEVELOPMENT TOKENS
# =============================================================================

@click.group('tokens')
def tokens_group():
    """Development bearer tokens."""


@tokens_group.command('issue')
@click.option('--company-id', type=int, required=True, help='Company ID (tenant_id claim)')
@click.option('--user-id', type=int, required=True, help='User ID (user_id claim)')
@click.option('--role', default=None, help='Role claim, e.g. admin')
@with_appcontext
def issue_token_cli(company_id, user_id, role):
    """Print a signed bearer token. For local development only."""
    click.echo(create_access_token(tenant_id=company_id, user_id=user_id, role=role))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(companies_group)
    app.cli.add_command(numbering_group)
    app.cli.add_command(tokens_group)
