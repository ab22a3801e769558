import sys

from gallery_billing.core.config import settings
from gallery_billing.db.session import engine
from gallery_billing.services.env_check import (
    check_database,
    check_hosted_backend,
    check_payment_provider,
    has_errors,
)

STEPS = (
    ("Hosted backend settings", lambda: check_hosted_backend(settings)),
    ("Payment provider settings", lambda: check_payment_provider(settings)),
    ("Database connectivity", lambda: check_database(engine)),
)


def main() -> int:
    findings = []
    for n, (title, step) in enumerate(STEPS, start=1):
        print(f"\n[{n}/{len(STEPS)}] {title}...")
        for finding in step():
            findings.append(finding)
            print(f"  {finding.level.upper()}: {finding.message}")

    print("\n" + "=" * 52)
    if has_errors(findings):
        print("ERRORS FOUND - fix the issues above")
        return 1
    print("All checks passed - environment is correctly configured")
    return 0


if __name__ == "__main__":
    sys.exit(main())
