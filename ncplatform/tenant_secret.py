#!/usr/bin/env python3
"""
Create the Kubernetes secret for a Nextcloud tenant.

Environment variables (or keys of a SOPS file given with --secrets-file):
    S3_ACCESS_KEY     S3 access key
    S3_SECRET_KEY     S3 secret key
    DB_PASSWORD       database password (generated with --generate-passwords)
    ADMIN_PASSWORD    Nextcloud admin password (optional, can be generated)
    DB_USERNAME       database username (default: nextcloud_<tenant>)
    TENANT_NAME       tenant name when not given as argument

Usage:
    ncp-create-tenant-secret canary --generate-admin-password
    ncp-create-tenant-secret canary --mariadb --generate-passwords --dry-run
"""
import argparse
import sys
from pathlib import Path

from ncplatform import inputs, tenants
from ncplatform.console import BLUE, GREEN, NC, RED, YELLOW, banner
from ncplatform.manifests import apply, ensure_namespace, render_secret
from ncplatform.sops import load_secret_values

SECRET_NAME = 'nextcloud-secrets'
ADMIN_USERNAME = 'admin'
ADMIN_PASSWORD_LENGTH = 24
NEXTCLOUD_SECRET_LENGTH = 64

REQUIRED_VARS = ['S3_ACCESS_KEY', 'S3_SECRET_KEY', 'DB_PASSWORD']
OPTIONAL_VARS = ['ADMIN_PASSWORD', 'DB_USERNAME']

# engine flag -> (chart externalDatabase.type, default port)
DB_ENGINES = {
    'postgres': ('postgresql', 5432),
    'mariadb': ('mysql', 3306),
}


def secret_labels(tenant: str) -> dict[str, str]:
    return {
        'app.kubernetes.io/name': 'nextcloud',
        'app.kubernetes.io/instance': tenant,
        'app.kubernetes.io/part-of': 'nextcloud-platform',
        'nextcloud.platform/tenant': tenant,
    }


def build_secret_data(
    values: dict[str, str],
    admin_password: str,
    nextcloud_secret: str,
    db_username: str,
    engine: str = 'postgres',
) -> dict[str, str]:
    db_type, db_port = DB_ENGINES[engine]
    return {
        'nextcloud-username': ADMIN_USERNAME,
        'nextcloud-password': admin_password,
        's3-access-key': values['S3_ACCESS_KEY'],
        's3-secret-key': values['S3_SECRET_KEY'],
        'db-type': db_type,
        'db-port': str(db_port),
        'db-username': db_username,
        'db-password': values['DB_PASSWORD'],
        'redis-password': '',
        'nextcloud-secret': nextcloud_secret,
    }


def render_tenant_secret(tenant: str, data: dict[str, str]) -> str:
    return render_secret(SECRET_NAME, tenants.tenant_namespace(tenant), data, secret_labels(tenant))


def resolve_tenant(arg: str | None, file_values: dict[str, str]) -> str:
    tenant = arg or inputs.lookup('TENANT_NAME', file_values)
    if not tenant:
        print(f"{RED}Error: Tenant name is required (argument or TENANT_NAME){NC}", file=sys.stderr)
        sys.exit(1)
    problem = tenants.check_tenant_name(tenant)
    if problem:
        print(f"{RED}Error: {problem}{NC}", file=sys.stderr)
        sys.exit(1)
    return tenant


def cmd_create(
    tenant: str,
    file_values: dict[str, str],
    engine: str = 'postgres',
    generate_admin: bool = False,
    generate_all: bool = False,
    dry_run: bool = False,
) -> dict[str, str]:
    namespace = tenants.tenant_namespace(tenant)

    banner(f"Creating secrets for tenant: {tenant}\nNamespace: {namespace}", BLUE)
    print()

    values = inputs.resolve(REQUIRED_VARS + OPTIONAL_VARS, file_values)
    if generate_all and not values['DB_PASSWORD']:
        values['DB_PASSWORD'] = inputs.generate_password(ADMIN_PASSWORD_LENGTH)
        print(f"{GREEN}Generated database password{NC}")
    inputs.require({name: values[name] for name in REQUIRED_VARS})

    admin_password = values['ADMIN_PASSWORD']
    if generate_admin or generate_all:
        admin_password = inputs.generate_password(ADMIN_PASSWORD_LENGTH)
        print(f"{GREEN}Generated admin password{NC}")
    elif not admin_password:
        print(f"{YELLOW}Warning: ADMIN_PASSWORD not set and no generate flag used{NC}", file=sys.stderr)
        print("Generating a random password...")
        admin_password = inputs.generate_password(ADMIN_PASSWORD_LENGTH)

    nextcloud_secret = inputs.generate_password(NEXTCLOUD_SECRET_LENGTH)
    db_username = values['DB_USERNAME'] or f"nextcloud_{tenant}"

    print()
    print("Configuration:")
    print(f"  Tenant:        {tenant}")
    print(f"  Namespace:     {namespace}")
    print(f"  DB Engine:     {DB_ENGINES[engine][0]}")
    print(f"  DB Username:   {db_username}")
    print(f"  S3 Access Key: {inputs.masked(values['S3_ACCESS_KEY'])}")
    print()

    data = build_secret_data(values, admin_password, nextcloud_secret, db_username, engine)
    manifest = render_tenant_secret(tenant, data)

    if dry_run:
        print(f"{YELLOW}DRY RUN - Would create:{NC}")
        print()
        print(manifest)
        return data

    ensure_namespace(namespace, tenant)
    print("Creating secret...")
    apply(manifest, f"secret {SECRET_NAME}")

    print()
    banner("Secret created successfully!", GREEN)
    print()
    print(f"{YELLOW}SAVE THESE CREDENTIALS SECURELY:{NC}")
    print()
    print(f"  Tenant:         {tenant}")
    print(f"  Namespace:      {namespace}")
    print(f"  Admin Username: {ADMIN_USERNAME}")
    print(f"  Admin Password: {GREEN}{admin_password}{NC}")
    if generate_all and not inputs.lookup('DB_PASSWORD', file_values):
        print(f"  DB Password:    {GREEN}{values['DB_PASSWORD']}{NC}")
    print()
    print("Verify with:")
    print(f"  kubectl get secret {SECRET_NAME} -n {namespace}")
    print()
    return data


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description='Create Kubernetes secrets for a Nextcloud tenant',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
required environment variables:
  S3_ACCESS_KEY, S3_SECRET_KEY, DB_PASSWORD

optional environment variables:
  ADMIN_PASSWORD, DB_USERNAME (default: nextcloud_<tenant>), TENANT_NAME

examples:
  export S3_ACCESS_KEY='your-key' S3_SECRET_KEY='your-secret' DB_PASSWORD='db-pass'
  ncp-create-tenant-secret canary --generate-admin-password
  ncp-create-tenant-secret canary --generate-passwords --dry-run
        """
    )
    parser.add_argument('tenant', nargs='?', help='tenant name (default: $TENANT_NAME)')
    engine = parser.add_mutually_exclusive_group()
    engine.add_argument(
        '--postgres',
        dest='engine', action='store_const', const='postgres',
        help='PostgreSQL database (default)'
    )
    engine.add_argument(
        '--mariadb',
        dest='engine', action='store_const', const='mariadb',
        help='MariaDB database'
    )
    parser.add_argument(
        '--generate-admin-password',
        action='store_true',
        help='Generate a random admin password'
    )
    parser.add_argument(
        '--generate-passwords',
        action='store_true',
        help='Generate the admin password and, when unset, the database password'
    )
    parser.add_argument(
        '-s', '--secrets-file',
        help='SOPS encrypted YAML with the variables as keys'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be created without applying'
    )
    parser.set_defaults(engine='postgres')
    args = parser.parse_args(argv)

    file_values = load_secret_values(Path(args.secrets_file) if args.secrets_file else None)
    tenant = resolve_tenant(args.tenant, file_values)

    cmd_create(
        tenant,
        file_values,
        engine=args.engine,
        generate_admin=args.generate_admin_password,
        generate_all=args.generate_passwords,
        dry_run=args.dry_run,
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
