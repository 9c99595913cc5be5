"""CLI tools for slow-mail administration."""

from datetime import datetime

import click

from slowpost.core.clock import ensure_utc
from slowpost.db.session import SessionLocal
from slowpost.services import delivery_sweep, user_service
from slowpost.services.user_service import UserServiceError
from slowpost.utils.business_hours import compute_scheduled_delivery
from slowpost.utils.timezones import InvalidTimezoneError, get_zone


@click.group()
def cli():
    """Slowpost CLI tools."""
    pass


@cli.command()
@click.option("--username", required=True, help="3-20 chars, starts with a letter")
@click.option("--region", required=True, help="Region shown on sent letters")
@click.option("--timezone", "timezone_name", required=True, help="IANA timezone, e.g. Europe/Paris")
@click.option("--discoverable-by-email", is_flag=True, help="Allow routing by email")
@click.option("--discoverable-by-phone", is_flag=True, help="Allow routing by phone")
@click.option("--discoverable-by-address", is_flag=True, help="Allow routing by postal address")
def create_user(
    username: str,
    region: str,
    timezone_name: str,
    discoverable_by_email: bool,
    discoverable_by_phone: bool,
    discoverable_by_address: bool,
):
    """
    Create an account with its system folders.

    Example:
        slowpost create-user --username alice --region "Lyon, FR" --timezone Europe/Paris
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(
            db,
            username=username,
            region=region,
            timezone=timezone_name,
            discoverable_by_email=discoverable_by_email,
            discoverable_by_phone=discoverable_by_phone,
            discoverable_by_address=discoverable_by_address,
        )
        click.echo(f"✓ Created user: {user.username}")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Timezone: {user.timezone}")
    except (UserServiceError, InvalidTimezoneError) as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--username", required=True, help="User to revoke sessions for")
def revoke_sessions(username: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        slowpost revoke-sessions --username alice
    """
    from slowpost.services.recipient_resolver import get_user_by_username

    db = SessionLocal()
    try:
        user = get_user_by_username(db, username)
        if not user:
            click.echo(f"❌ User not found: {username}")
            return

        old_version = user.token_version
        user.token_version += 1
        db.commit()

        click.echo(f"✓ Revoked all sessions for {user.username}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")

    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
def run_sweep():
    """Run one delivery sweep now and print what moved."""
    with SessionLocal() as db:
        summary = delivery_sweep.run_sweep(db)
    for name, count in summary.as_dict().items():
        click.echo(f"  {name}: {count}")


@cli.command()
@click.option("--sent-at", required=True, help="ISO 8601 instant; naive values are UTC")
@click.option("--timezone", "timezone_name", required=True, help="Recipient IANA timezone")
def schedule_preview(sent_at: str, timezone_name: str):
    """
    Show when a letter sent at SENT_AT would be delivered.

    Example:
        slowpost schedule-preview --sent-at 2024-01-05T17:00:00Z --timezone UTC
    """
    try:
        sent = ensure_utc(datetime.fromisoformat(sent_at.replace("Z", "+00:00")))
    except ValueError:
        click.echo(f"❌ Not an ISO 8601 timestamp: {sent_at}")
        return
    try:
        schedule = compute_scheduled_delivery(sent, timezone_name)
    except InvalidTimezoneError as e:
        click.echo(f"❌ {e}")
        return

    tz = get_zone(timezone_name)
    click.echo(f"Earliest:  {schedule.earliest_delivery_at.isoformat()}"
               f" ({schedule.earliest_delivery_at.astimezone(tz):%a %Y-%m-%d %H:%M %Z})")
    click.echo(f"Scheduled: {schedule.scheduled_delivery_at.isoformat()}"
               f" ({schedule.scheduled_delivery_at.astimezone(tz):%a %Y-%m-%d %H:%M %Z})")


if __name__ == "__main__":
    cli()
