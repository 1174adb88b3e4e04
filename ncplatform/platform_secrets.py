#!/usr/bin/env python3
"""
Secrets for the shared platform components in the nextcloud-platform namespace.

    pgbouncer        pgbouncer-credentials: connection details for PgBouncer
    postgres-admin   postgres-admin: admin credentials for the database
                     provisioning Job (CREATE DATABASE / CREATE USER)

Usage:
    ncp-platform-secrets pgbouncer
    ncp-platform-secrets postgres-admin --dry-run
"""
import argparse
import sys
from pathlib import Path

from ncplatform import inputs
from ncplatform.console import BLUE, GREEN, NC, YELLOW, banner
from ncplatform.manifests import PART_OF_LABEL, apply, ensure_namespace, render_secret
from ncplatform.sops import load_secret_values
from ncplatform.tenants import PLATFORM_NAMESPACE

DEFAULT_POSTGRES_PORT = '5432'

SECRETS = {
    'pgbouncer': {
        'title': 'Creating Platform Secrets',
        'name': 'pgbouncer-credentials',
        'user_var': 'POSTGRES_USER',
        'password_var': 'POSTGRES_PASSWORD',
        'labels': PART_OF_LABEL,
        'hints': {
            'POSTGRES_HOST': 'your-postgresql-host',
            'POSTGRES_USER': 'nextcloud',
            'POSTGRES_PASSWORD': 'your-password',
        },
        'done': 'Platform secrets created successfully',
    },
    'postgres-admin': {
        'title': 'Creating PostgreSQL Admin Secret',
        'name': 'postgres-admin',
        'user_var': 'POSTGRES_ADMIN_USER',
        'password_var': 'POSTGRES_ADMIN_PASSWORD',
        'labels': {**PART_OF_LABEL, 'app.kubernetes.io/component': 'database'},
        'hints': {
            'POSTGRES_HOST': 'your-postgres-host',
            'POSTGRES_ADMIN_USER': 'postgres',
            'POSTGRES_ADMIN_PASSWORD': 'your-admin-password',
        },
        'done': 'PostgreSQL admin secret created',
    },
}


def connection_data(kind: str, file_values: dict[str, str]) -> dict[str, str]:
    """host/port/username/password for a secret kind; exits when inputs are missing."""
    spec = SECRETS[kind]
    required = inputs.resolve(['POSTGRES_HOST', spec['user_var'], spec['password_var']], file_values)
    inputs.require(required, spec['hints'])

    return {
        'host': required['POSTGRES_HOST'],
        'port': inputs.lookup('POSTGRES_PORT', file_values) or DEFAULT_POSTGRES_PORT,
        'username': required[spec['user_var']],
        'password': required[spec['password_var']],
    }


def cmd_create(kind: str, file_values: dict[str, str], dry_run: bool = False) -> str:
    spec = SECRETS[kind]

    banner(spec['title'], BLUE)
    print()

    data = connection_data(kind, file_values)

    print("Configuration:")
    print(f"  Host: {data['host']}")
    print(f"  Port: {data['port']}")
    print(f"  User: {data['username']}")
    print()

    manifest = render_secret(spec['name'], PLATFORM_NAMESPACE, data, spec['labels'])

    if dry_run:
        print(f"{YELLOW}DRY RUN - Would create:{NC}")
        print()
        print(manifest)
        return manifest

    ensure_namespace(PLATFORM_NAMESPACE)
    print(f"Creating secret {spec['name']}...")
    apply(manifest, f"secret {spec['name']}")

    print()
    print(f"{GREEN}✓ {spec['done']}{NC}")
    print()
    print("Verify with:")
    print(f"  kubectl get secret {spec['name']} -n {PLATFORM_NAMESPACE}")
    return manifest


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description='Create secrets for platform components',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
environment variables:
  pgbouncer:       POSTGRES_HOST, POSTGRES_USER, POSTGRES_PASSWORD
  postgres-admin:  POSTGRES_HOST, POSTGRES_ADMIN_USER, POSTGRES_ADMIN_PASSWORD
  both:            POSTGRES_PORT (default 5432)
        """
    )
    parser.add_argument('command', choices=list(SECRETS), help='Secret to create')
    parser.add_argument(
        '-s', '--secrets-file',
        help='SOPS encrypted YAML with the variables as keys'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be created without applying'
    )
    args = parser.parse_args(argv)

    file_values = load_secret_values(Path(args.secrets_file) if args.secrets_file else None)
    cmd_create(args.command, file_values, dry_run=args.dry_run)
    return 0


if __name__ == '__main__':
    sys.exit(main())
