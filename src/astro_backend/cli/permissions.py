"""
CLI commands for the permission catalogs and the legacy migration.
"""

import asyncio
import logging
from typing import Optional
import click

from astro_backend.database import get_db, init_db
from astro_backend.permissions.cache import CacheStats, PermissionCache
from astro_backend.permissions.integration import AccessService
from astro_backend.redis_cache import build_cache
from astro_backend.repositories import RepositoryError
from astro_backend.settings import settings


async def _run(action):
    cache = PermissionCache(build_cache(), CacheStats())
    with next(get_db()) as db:
        return await action(AccessService(db, cache))


def run_service(action):
    logging.basicConfig(level=settings.LOG_LEVEL)
    try:
        return asyncio.run(_run(action))
    except RepositoryError as e:
        raise click.ClickException(str(e))


@click.command()
@click.option('--create-tables', is_flag=True, help='Create missing tables first')
def bootstrap(create_tables: bool):
    """
    Create the default permissions and system roles if the catalogs are empty.

    Examples:
        astro bootstrap
        astro bootstrap --create-tables
    """
    if create_tables:
        init_db()

    inserted = run_service(lambda service: service.bootstrap())

    if inserted:
        click.echo(click.style(f"Bootstrapped catalogs with {inserted} roles", fg="green"))
    else:
        click.echo("Catalogs already populated, nothing to do")


@click.command()
@click.option('--user-id', default=None, help='Migrate a single user instead of all users')
@click.option('--assign-roles', is_flag=True, help='Give users without roles the role of their system tier')
def migrate(user_id: Optional[str], assign_roles: bool):
    """Move legacy permission lists into direct permissions."""

    if user_id:
        principal = run_service(lambda service: service.migration.migrate(user_id, assign_system_role=assign_roles))
        click.echo(f"Migrated user {principal.id}: {len(principal.direct_permission_ids)} direct permissions")
        return

    report = run_service(lambda service: service.migrate_all_legacy_permissions(assign_system_roles=assign_roles))

    click.echo(f"Total: {report.total}")
    click.echo(click.style(f"Succeeded: {report.succeeded}", fg="green"))
    if report.failed:
        click.echo(click.style(f"Failed: {report.failed}", fg="red"))
        for principal_id, message in report.failures.items():
            click.echo(f"  {principal_id}: {message}")


@click.command()
@click.argument('user_id')
def resolve(user_id: str):
    """Print the effective permission ids of a user."""

    effective = run_service(lambda service: service.resolve_effective_permissions(user_id))

    if effective.admin:
        click.echo(click.style("admin: all permissions granted", fg="yellow"))
    for permission in effective.permissions:
        click.echo(permission.id)
