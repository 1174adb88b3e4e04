import os
import secrets
import string
import sys

from ncplatform.console import RED, NC

PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_password(length: int = 24) -> str:
    return ''.join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def lookup(name: str, file_values: dict[str, str], environ=None) -> str:
    """Environment first, then the decrypted secrets file; '' when unset."""
    environ = os.environ if environ is None else environ
    return environ.get(name) or file_values.get(name) or ''


def resolve(names: list[str], file_values: dict[str, str], environ=None) -> dict[str, str]:
    return {name: lookup(name, file_values, environ) for name in names}


def require(values: dict[str, str], hints: dict[str, str] | None = None) -> None:
    """Exit with the list of unset variables and how to set them."""
    missing = [name for name, value in values.items() if not value]
    if not missing:
        return

    hints = hints or {}
    print(f"{RED}Error: Missing required environment variables:{NC}", file=sys.stderr)
    for name in missing:
        print(f"  - {name}", file=sys.stderr)
    print(file=sys.stderr)
    print("Set them with:", file=sys.stderr)
    for name in missing:
        print(f"  export {name}='{hints.get(name, 'your-value')}'", file=sys.stderr)
    sys.exit(1)


def masked(value: str, keep: int = 8) -> str:
    return f"{value[:keep]}..."
