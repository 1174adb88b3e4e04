import os
import sys


def _color(code: str) -> str:
    return '' if os.environ.get('NO_COLOR') else code


RED = _color('\033[0;31m')
GREEN = _color('\033[0;32m')
YELLOW = _color('\033[1;33m')
BLUE = _color('\033[0;34m')
NC = _color('\033[0m')

RULE = '=' * 42


def banner(title: str, color: str = '') -> None:
    end = NC if color else ''
    print(f"{color}{RULE}{end}")
    print(f"{color}{title}{end}")
    print(f"{color}{RULE}{end}")


class Reporter:
    """Counts errors, warnings and passed checks while printing them."""

    PREFIXES = {
        'error': 'ERROR:',
        'warning': 'WARNING:',
        'success': 'OK:',
        'info': 'INFO:',
    }

    def __init__(self):
        self.errors = 0
        self.warnings = 0
        self.passed = 0

    def error(self, msg: str) -> None:
        print(f"{RED}{self.PREFIXES['error']}{NC} {msg}", file=sys.stderr)
        self.errors += 1

    def warning(self, msg: str) -> None:
        print(f"{YELLOW}{self.PREFIXES['warning']}{NC} {msg}", file=sys.stderr)
        self.warnings += 1

    def success(self, msg: str) -> None:
        print(f"{GREEN}{self.PREFIXES['success']}{NC} {msg}")
        self.passed += 1

    def info(self, msg: str) -> None:
        print(f"{BLUE}{self.PREFIXES['info']}{NC} {msg}")

    def exit_code(self) -> int:
        return 1 if self.errors else 0


class SymbolReporter(Reporter):
    PREFIXES = {
        'error': '✗ ERROR:',
        'warning': '⚠ WARNING:',
        'success': '✓',
        'info': 'ℹ',
    }


def print_verdict(reporter: Reporter, clean_message: str) -> int:
    """Print the closing FAILED/PASSED line and return the exit code."""
    print()
    if reporter.errors:
        print(f"{RED}FAILED: {reporter.errors} error(s) found{NC}")
    elif reporter.warnings:
        print(f"{YELLOW}PASSED with warnings{NC}")
    else:
        print(f"{GREEN}{clean_message}{NC}")
    return reporter.exit_code()
