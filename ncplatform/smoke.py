#!/usr/bin/env python3
"""
Local smoke checks for the Nextcloud platform repository.

Validates that:
  1. required files exist and values files parse
  2. values are consistent (chart pinned, every tenant has a bucket)
  3. Helm templates render for tenants (--all / --tenant)
  4. rendered manifests are valid Kubernetes resources (kubeconform)

Usage:
    ncp-smoke-checks
    ncp-smoke-checks --tenant canary
    ncp-smoke-checks --all --check-buckets
"""
import argparse
import sys
import tempfile
from pathlib import Path

import yaml

from ncplatform import tenants
from ncplatform.console import GREEN, NC, RED, YELLOW, SymbolReporter, banner, print_verdict
from ncplatform.kube import (
    HELM_REPO_NAME, HELM_REPO_URL, helm_repo_add, helm_repo_present,
    helm_template, kubeconform, missing_tools,
)
from ncplatform.s3 import head_bucket

TEMPLATE_TOOLS = ['helm', 'kubeconform']
BUCKET_TOOLS = ['aws']

INSTALL_HINTS = {
    'helm': 'https://helm.sh/docs/intro/install/',
    'kubeconform': 'https://github.com/yannh/kubeconform#installation',
    'aws': 'https://docs.aws.amazon.com/cli/latest/userguide/getting-started-install.html',
}

RELEASE_NAME = 'nextcloud'


def check_dependencies(reporter: SymbolReporter, tools: list[str]) -> None:
    missing = missing_tools(tools)
    if missing:
        print(f"Missing tools: {' '.join(missing)}")
        print()
        print("Install instructions:")
        for tool in missing:
            print(f"  {tool + ':':<13}{INSTALL_HINTS[tool]}")
        print()
        print("Or run with --skip-deps to skip dependency checks")
        sys.exit(1)
    reporter.success("All dependencies installed")


def check_required_files(root: Path, reporter: SymbolReporter) -> None:
    reporter.info("Checking required files...")
    for rel in tenants.REQUIRED_FILES:
        if (root / rel).is_file():
            reporter.success(f"Found: {rel}")
        else:
            reporter.error(f"Missing: {rel}")


def lint_values(root: Path, reporter: SymbolReporter) -> None:
    reporter.info("Linting values files...")
    values = tenants.values_dir(root)
    files = [values / 'common.yaml'] + sorted((values / 'env').glob('*.yaml'))
    for path in files:
        if not path.is_file():
            continue
        try:
            tenants.load_yaml(path)
        except (yaml.YAMLError, UnicodeDecodeError):
            reporter.error(f"Invalid YAML: {path}")
        else:
            reporter.success(f"Valid YAML: {path.name}")


def read_chart_version(root: Path) -> str | None:
    common = tenants.values_dir(root) / 'common.yaml'
    try:
        text = common.read_text(encoding='utf-8')
        doc = yaml.safe_load(text)
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        return None
    version = tenants.get_path(doc, '.chart.version')
    if tenants.is_missing(version):
        return None
    if isinstance(version, str):
        return version
    # an unquoted 4.10 loads as the float 4.1
    return tenants.scalar_text(yaml.compose(text), '.chart.version') or str(version)


def _load_tenant(path: Path):
    try:
        return tenants.load_yaml(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError):
        return None


def check_values_consistency(root: Path, reporter: SymbolReporter) -> str | None:
    """Returns the pinned chart version, if any."""
    reporter.info("Checking values consistency...")

    chart_version = read_chart_version(root)
    if chart_version:
        reporter.success(f"Chart version pinned: {chart_version}")
    else:
        reporter.warning("Chart version not pinned in common.yaml")

    for path in tenants.find_tenant_files(root, recursive=False):
        name = tenants.tenant_name_from_file(path)
        bucket = tenants.get_path(_load_tenant(path), '.tenant.s3.bucket')
        if tenants.is_missing(bucket):
            reporter.error(f"Tenant {name} missing S3 bucket configuration")
        else:
            reporter.success(f"Tenant {name} has S3 bucket: {bucket}")
    return chart_version


def check_buckets(root: Path, reporter: SymbolReporter) -> None:
    reporter.info("Checking S3 buckets exist...")
    for path in tenants.find_tenant_files(root, recursive=False):
        name = tenants.tenant_name_from_file(path)
        bucket = tenants.get_path(_load_tenant(path), '.tenant.s3.bucket')
        if tenants.is_missing(bucket):
            continue
        exists, err = head_bucket(str(bucket))
        if exists:
            reporter.success(f"Bucket reachable for {name}: {bucket}")
        else:
            reporter.error(f"Bucket {bucket} for tenant {name} not reachable: {err or 'head-bucket failed'}")


def setup_helm(reporter: SymbolReporter) -> None:
    if not helm_repo_present(HELM_REPO_NAME):
        reporter.info("Adding Nextcloud Helm repo...")
        helm_repo_add(HELM_REPO_NAME, HELM_REPO_URL)


def manifest_kinds(rendered: str) -> set[str]:
    return {
        doc['kind'] for doc in yaml.safe_load_all(rendered)
        if isinstance(doc, dict) and 'kind' in doc
    }


def check_rendered(rendered: str, reporter: SymbolReporter) -> None:
    """Resource and configuration checks on helm output."""
    reporter.info("Checking generated resources...")
    try:
        kinds = manifest_kinds(rendered)
    except yaml.YAMLError:
        reporter.error("Generated manifests are not valid YAML")
        return

    for kind in ('Deployment', 'Service'):
        if kind in kinds:
            reporter.success(f"{kind} resource found")
        else:
            reporter.error(f"No {kind} resource found")

    if 'Ingress' in kinds:
        reporter.success("Ingress resource found")
    else:
        reporter.warning("No Ingress resource found")

    # S3 primary storage is what keeps tenant files off the pod volumes
    if 'objectstore' in rendered or 'S3' in rendered:
        reporter.success("S3 object storage configuration found")
    else:
        reporter.warning("No S3 configuration detected - user files may use local storage!")

    if 'redis' in rendered or 'Redis' in rendered:
        reporter.success("Redis configuration found")
    else:
        reporter.warning("No Redis configuration detected - may affect caching/locking")


def template_tenant(root: Path, name: str, reporter: SymbolReporter, chart_version: str | None = None) -> bool:
    tenant_path = tenants.tenant_file(root, name)
    if not tenant_path.is_file():
        reporter.error(f"Tenant file not found: {tenant_path}")
        return False

    env = tenants.get_path(_load_tenant(tenant_path), '.tenant.environment')
    env_path = tenants.env_values_file(root, tenants.as_text(env))
    if tenants.is_missing(env) or not env_path.is_file():
        reporter.error(f"Environment file not found: {env_path}")
        return False

    reporter.info(f"Templating tenant: {name} (env: {env})")

    result = helm_template(
        RELEASE_NAME,
        [tenants.values_dir(root) / 'common.yaml', env_path, tenant_path],
        tenants.tenant_namespace(name),
        version=chart_version,
        set_values={'fullnameOverride': RELEASE_NAME},
    )
    if result.returncode != 0:
        reporter.error(f"Helm template failed for {name}")
        if result.stderr.strip():
            print(f"  {result.stderr.strip()}", file=sys.stderr)
        return False
    reporter.success(f"Helm template succeeded for {name}")

    rendered = result.stdout
    if not rendered.strip():
        reporter.error(f"Generated manifest is empty for {name}")
        return False
    reporter.success(f"Generated {len(rendered.splitlines())} lines of manifests")

    reporter.info("Validating Kubernetes manifests with kubeconform...")
    with tempfile.TemporaryDirectory() as tmpdir:
        manifest_file = Path(tmpdir) / 'manifests.yaml'
        manifest_file.write_text(rendered)
        check = kubeconform(manifest_file)
    if check.stdout.strip():
        print(check.stdout.strip())
    if check.returncode == 0:
        reporter.success("Kubernetes schema validation passed")
    else:
        reporter.warning("Some schemas could not be validated (may be CRDs)")
        if check.stderr.strip():
            print(f"  {check.stderr.strip()}", file=sys.stderr)

    check_rendered(rendered, reporter)
    return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Nextcloud platform smoke checks')
    parser.add_argument('-r', '--root', help='repository root (default: $NC_PLATFORM_ROOT or cwd)')
    parser.add_argument('--skip-deps', action='store_true', help='Skip dependency checks')
    parser.add_argument('--tenant', metavar='NAME', help='Only template a specific tenant')
    parser.add_argument('--all', action='store_true', help='Run all checks including Helm template')
    parser.add_argument(
        '--check-buckets',
        action='store_true',
        help='Verify tenant buckets exist with aws s3api head-bucket'
    )
    args = parser.parse_args(argv)

    root = tenants.resolve_root(args.root)
    reporter = SymbolReporter()

    banner('Nextcloud Platform Smoke Checks')
    print()

    if not args.skip_deps:
        check_dependencies(reporter, TEMPLATE_TOOLS + (BUCKET_TOOLS if args.check_buckets else []))
    print()

    check_required_files(root, reporter)
    print()

    lint_values(root, reporter)
    print()

    chart_version = check_values_consistency(root, reporter)
    print()

    if args.check_buckets:
        check_buckets(root, reporter)
        print()

    if args.all or args.tenant:
        setup_helm(reporter)
        print()

        if args.tenant:
            template_tenant(root, args.tenant, reporter, chart_version)
        else:
            for path in tenants.find_tenant_files(root, recursive=False):
                template_tenant(root, tenants.tenant_name_from_file(path), reporter, chart_version)
                print()
    else:
        reporter.info("Skipping Helm template (use --all to enable)")

    print()
    banner('Summary')
    print(f"Passed:   {GREEN}{reporter.passed}{NC}")
    print(f"Warnings: {YELLOW}{reporter.warnings}{NC}")
    print(f"Errors:   {RED}{reporter.errors}{NC}")
    return print_verdict(reporter, 'ALL CHECKS PASSED')


if __name__ == '__main__':
    sys.exit(main())
