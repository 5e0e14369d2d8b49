"""CLI tools for phone registry administration."""

import click

from phone_registry.core.security import create_access_token
from phone_registry.db.session import SessionLocal
from phone_registry.services import employee_service, verification_batch_service


@click.group()
def cli():
    """Phone registry CLI tools."""
    pass


@cli.command()
@click.option("--employee-id", required=True, help="Operator's business employee ID")
@click.option("--role", default="admin", show_default=True, help="Role claim for the token")
def issue_token(employee_id: str, role: str):
    """
    Mint an operator bearer token.

    Operator login is handled outside this service; this is the bootstrap
    path for scripts and first-time setup.

    Example:
        python -m phone_registry.cli issue-token --employee-id EMP0000001
    """
    db = SessionLocal()
    try:
        employee = employee_service.get_employee(db, employee_id)
        if not employee:
            raise click.ClickException(f"Employee {employee_id} not found")
        click.echo(create_access_token(employee.employee_id, role))
    finally:
        db.close()


@cli.command()
def expire_tokens():
    """Flag verification tokens past their expiry as expired."""
    db = SessionLocal()
    try:
        count = verification_batch_service.expire_stale_tokens(db)
        click.echo(f"✓ Expired {count} verification tokens")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
