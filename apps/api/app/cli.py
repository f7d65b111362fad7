"""CLI tools for portal administration."""

import click
from sqlalchemy.exc import IntegrityError

from app.db.models import Client, ClientContact
from app.db.session import SessionLocal
from app.services.identity_provider import ClerkIdentityProvider, IdentityProviderError


@click.group()
def cli():
    """Client portal CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Client name")
@click.option("--email", required=True, help="Client billing/contact email")
@click.option("--company", default=None, help="Company name")
@click.option("--website", default=None, help="Website URL")
@click.option("--contact-name", default=None, help="Primary contact name (defaults to client name)")
def create_client(name: str, email: str, company: str | None, website: str | None, contact_name: str | None):
    """
    Create a client with a primary contact for its email.

    The contact is linked to the identity provider user on first sign-in.

    Example:
        python -m app.cli create-client --name "Acme" --email "owner@acme.com"
    """
    db = SessionLocal()
    try:
        email = email.strip().lower()
        if db.query(Client).filter(Client.email == email).first():
            click.echo(f"❌ Client with email '{email}' already exists")
            return

        client = Client(name=name, email=email, company=company, website_url=website)
        db.add(client)
        db.flush()
        db.add(
            ClientContact(
                client_id=client.id,
                email=email,
                name=contact_name or name,
                is_primary=True,
            )
        )
        db.commit()

        click.echo(f"✓ Created client: {name}")
        click.echo(f"  ID: {client.id}")
        click.echo(f"✓ Created primary contact for {email}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--dry-run", is_flag=True, help="Preview changes without applying")
def link_contacts(dry_run: bool):
    """
    Link unlinked contacts to identity provider users by email.

    Safe to re-run: only contacts without an external user id are touched,
    and a user already linked to a client is never linked twice.
    """
    db = SessionLocal()
    provider = ClerkIdentityProvider()
    linked = skipped = missing = 0
    try:
        contacts = (
            db.query(ClientContact)
            .filter(ClientContact.external_user_id.is_(None))
            .order_by(ClientContact.created_at.asc())
            .all()
        )
        for contact in contacts:
            try:
                user = provider.find_user_by_email(contact.email)
            except IdentityProviderError as e:
                click.echo(f"❌ Lookup failed for contact {contact.id}: {e}")
                return
            if user is None:
                missing += 1
                continue
            duplicate = (
                db.query(ClientContact.id)
                .filter(
                    ClientContact.client_id == contact.client_id,
                    ClientContact.external_user_id == user.id,
                )
                .first()
            )
            if duplicate:
                skipped += 1
                continue
            linked += 1
            if not dry_run:
                contact.external_user_id = user.id
                db.flush()

        if dry_run:
            db.rollback()
        else:
            db.commit()
    except IntegrityError as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        return
    finally:
        db.close()

    prefix = "[dry run] " if dry_run else ""
    click.echo(f"✓ {prefix}Linked {linked} contact(s)")
    click.echo(f"  Skipped (already linked to client): {skipped}")
    click.echo(f"  No matching user: {missing}")


if __name__ == "__main__":
    cli()
