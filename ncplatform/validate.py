#!/usr/bin/env python3
"""
Validate tenant values files.

Checks, per file:
  1. YAML syntax (yamllint, relaxed preset)
  2. required fields are present
  3. no disallowed (secret) fields are present
  4. field values match the expected patterns
  5. no obviously hardcoded secrets (warnings only)
  6. optionally, the OPA tenant policy

Usage:
    ncp-validate-values [tenant-file.yaml ...]
    ncp-validate-values                 # every values/tenants/tenant-*.yaml
    ncp-validate-values --policy        # also evaluate rego/tenant.rego
    ncp-validate-values --policy --policy-file custom.rego tenant-canary.yaml
"""
import argparse
import re
import sys
from pathlib import Path

import yaml
from yamllint import linter
from yamllint.config import YamlLintConfig

from ncplatform import tenants
from ncplatform.console import Reporter, banner, print_verdict
from ncplatform.policy import POLICY_FILE, PolicyError, evaluate_policy

YAMLLINT_CONFIG = '{extends: relaxed, rules: {line-length: {max: 200}}}'

SECRET_PATTERNS = [
    'password.*:',
    'secret.*:',
    'apikey.*:',
    'api_key.*:',
    'access_key.*:',
    'secret_key.*:',
    'token.*:',
]
# references to secrets, not secrets
SECRET_REFERENCE_MARKERS = ('secretKeyRef', 'secretName', 'Key:')

_lint_config = None


def lint_config() -> YamlLintConfig:
    global _lint_config
    if _lint_config is None:
        _lint_config = YamlLintConfig(YAMLLINT_CONFIG)
    return _lint_config


# ── Checks ───────────────────────────────────────────

def validate_yaml_syntax(path: Path, text: str, reporter: Reporter) -> tuple[bool, object]:
    """Lint and parse the file; returns (ok, document)."""
    problems = list(linter.run(text, lint_config(), str(path)))
    for p in problems:
        rule = f"  ({p.rule})" if p.rule else ''
        print(f"  {p.line}:{p.column}  {p.level}  {p.desc}{rule}")

    if any(p.level == 'error' for p in problems):
        reporter.error(f"{path}: YAML syntax error")
        return False, None

    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError:
        reporter.error(f"{path}: YAML syntax error")
        return False, None
    return True, doc


def validate_required_fields(path: Path, doc, reporter: Reporter) -> bool:
    ok = True
    for field in tenants.REQUIRED_FIELDS:
        if tenants.is_missing(tenants.get_path(doc, field)):
            reporter.error(f"{path}: Missing required field: {field}")
            ok = False
    return ok


def validate_no_disallowed_fields(path: Path, doc, reporter: Reporter) -> bool:
    ok = True
    for field in tenants.DISALLOWED_FIELDS:
        if not tenants.is_missing(tenants.get_path(doc, field)):
            reporter.error(f"{path}: Disallowed field found (potential secret): {field}")
            ok = False
    return ok


def _present(doc, field: str) -> str | None:
    value = tenants.get_path(doc, field)
    if tenants.is_missing(value):
        return None
    return tenants.as_text(value)


def validate_tenant_name(path: Path, doc, reporter: Reporter) -> bool:
    name = _present(doc, '.tenant.name')
    if name is None:
        return True
    problem = tenants.check_tenant_name(name)
    if problem:
        reporter.error(f"{path}: {problem}")
        return False
    return True


def validate_environment(path: Path, doc, reporter: Reporter) -> bool:
    env = _present(doc, '.tenant.environment')
    if env is None or env in tenants.ENVIRONMENTS:
        return True
    reporter.error(f"{path}: Invalid environment '{env}'. Must be 'accept' or 'prod'.")
    return False


def validate_hostname(path: Path, doc, reporter: Reporter) -> bool:
    hostname = _present(doc, '.tenant.hostname')
    if hostname is None or tenants.HOSTNAME_RE.fullmatch(hostname):
        return True
    reporter.error(f"{path}: Invalid hostname '{hostname}'. Must be a valid DNS name.")
    return False


def validate_wave(path: Path, doc, reporter: Reporter) -> bool:
    value = tenants.get_path(doc, '.tenant.wave')
    if value is None or value is False:
        value = tenants.DEFAULT_WAVE
    wave = tenants.as_text(value)

    if not tenants.WAVE_RE.fullmatch(wave):
        reporter.error(f"{path}: Invalid wave '{wave}'. Must be a non-negative integer.")
        return False

    if int(wave) > tenants.WAVE_WARN_ABOVE:
        reporter.warning(f"{path}: Wave '{wave}' is unusually high. Are you sure?")
    return True


def validate_bucket(path: Path, doc, reporter: Reporter) -> bool:
    bucket = _present(doc, '.tenant.s3.bucket')
    if bucket is None:
        return True
    problem = tenants.check_bucket(bucket)
    if problem:
        reporter.error(f"{path}: {problem}")
        return False
    return True


def find_hardcoded_secrets(text: str) -> list[str]:
    """Patterns with at least one line that looks like a literal secret value."""
    hits = []
    lines = text.splitlines()
    for pattern in SECRET_PATTERNS:
        line_re = re.compile(rf"""^\s*{pattern}\s*['"]?[^{{}}$]""", re.IGNORECASE)
        for line in lines:
            if not line_re.search(line):
                continue
            if any(marker in line for marker in SECRET_REFERENCE_MARKERS):
                continue
            hits.append(pattern)
            break
    return hits


def check_for_secrets(path: Path, text: str, reporter: Reporter) -> None:
    for pattern in find_hardcoded_secrets(text):
        reporter.warning(f"{path}: Potential hardcoded secret detected (pattern: {pattern})")


def check_policy(path: Path, policy_file: Path, reporter: Reporter) -> bool:
    try:
        deny, warn = evaluate_policy(path, policy_file)
    except PolicyError as e:
        reporter.error(f"{path}: {e}")
        return False
    for msg in warn:
        reporter.warning(f"{path}: policy: {msg}")
    for msg in deny:
        reporter.error(f"{path}: policy: {msg}")
    return not deny


FIELD_CHECKS = [
    validate_required_fields,
    validate_no_disallowed_fields,
    validate_tenant_name,
    validate_environment,
    validate_hostname,
    validate_wave,
    validate_bucket,
]


def validate_tenant_file(path: Path, reporter: Reporter, policy_file: Path | None = None) -> int:
    """Run every check on one file; returns the number of failed checks."""
    print(f"Validating: {path.name}")

    if not tenants.TENANT_FILENAME_RE.fullmatch(path.name):
        reporter.warning(f"{path}: Filename should match pattern 'tenant-<name>.yaml'")

    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        reporter.error(f"{path}: cannot read file: {e.strerror}")
        return 1
    except UnicodeDecodeError as e:
        print(f"  {e.reason} at byte {e.start}")
        reporter.error(f"{path}: YAML syntax error")
        return 1

    ok, doc = validate_yaml_syntax(path, text, reporter)
    if not ok:
        return 1

    file_errors = sum(1 for check in FIELD_CHECKS if not check(path, doc, reporter))
    check_for_secrets(path, text, reporter)

    if policy_file is not None and not check_policy(path, policy_file, reporter):
        file_errors += 1

    if file_errors == 0:
        reporter.success(f"{path.name} passed all validations")
    return file_errors


# ── Main ─────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description='Validate tenant values files')
    parser.add_argument('files', nargs='*', help='tenant files (default: all under values/tenants)')
    parser.add_argument('-r', '--root', help='repository root (default: $NC_PLATFORM_ROOT or cwd)')
    parser.add_argument('--policy', action='store_true', help='also evaluate the OPA tenant policy (requires opa)')
    parser.add_argument(
        '--policy-file',
        default=str(POLICY_FILE),
        metavar='REGO',
        help='Rego policy used with --policy (default: the shipped tenant.rego)'
    )
    args = parser.parse_args(argv)

    root = tenants.resolve_root(args.root)
    if args.files:
        files = [Path(f) for f in args.files]
    else:
        files = tenants.find_tenant_files(root)

    if not files:
        print(f"No tenant files found in {tenants.tenant_dir(root)}")
        return 0

    policy_file = Path(args.policy_file) if args.policy else None
    reporter = Reporter()

    banner(f"Validating {len(files)} tenant file(s)")
    print()

    for path in files:
        validate_tenant_file(path, reporter, policy_file)
        print()

    banner('Validation Summary')
    print(f"Files validated: {len(files)}")
    print(f"Errors: {reporter.errors}")
    print(f"Warnings: {reporter.warnings}")
    return print_verdict(reporter, 'PASSED: All validations successful')


if __name__ == '__main__':
    sys.exit(main())
