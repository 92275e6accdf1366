# gatehouse/cli/__main__.py
from __future__ import annotations

import argparse
import json
from dataclasses import asdict

from .seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m gatehouse.cli", description="Seed a demo community.")
    p.add_argument("--community-name", default="Green Meadows")
    p.add_argument("--admin-email", default="admin@greenmeadows.local")
    p.add_argument("--owner-mobile", default="9000000001")
    p.add_argument("--tenant-mobile", default="9000000002")
    args = p.parse_args()

    out = seed_demo(
        community_name=args.community_name,
        admin_email=args.admin_email,
        owner_mobile=args.owner_mobile,
        tenant_mobile=args.tenant_mobile,
    )
    print(json.dumps({"ok": True, **asdict(out)}, indent=2))


if __name__ == "__main__":
    main()
