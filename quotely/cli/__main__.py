# quotely/cli/__main__.py
import json
import sys
from dataclasses import asdict

from quotely.server.deps import build_store
from quotely.server.settings import settings

USAGE = """Usage:
  python -m quotely.cli show <quote_id>
  python -m quotely.cli search <query>
  python -m quotely.cli reset

Examples:
  python -m quotely.cli show q1
  python -m quotely.cli search arch
  QUOTELY_STORAGE=sql python -m quotely.cli reset
"""


def _print_json(data) -> None:
    sys.stdout.write(json.dumps(data, ensure_ascii=False, indent=2) + "\n")


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(USAGE, file=sys.stderr); sys.exit(1)

    cmd = args[0].lower()
    store = build_store(settings)

    if cmd == "show":
        if len(args) < 2:
            print(USAGE, file=sys.stderr); sys.exit(1)
        bundle = store.get_bundle(args[1])
        if bundle is None:
            print(f"Hittade ingen offert/mall med id '{args[1]}'", file=sys.stderr)
            sys.exit(2)
        totals = store.get_totals(bundle.quote.id)
        _print_json({
            "id": bundle.quote.id,
            "title": bundle.quote.title,
            "status": bundle.quote.status.value,
            "project": store.get_project_name(bundle.quote.project_id),
            "sections": len(bundle.sections),
            "lineItems": len(bundle.line_items),
            "totals": {**asdict(totals), "hidden_hours": totals.hidden_hours},
        })
        return

    if cmd == "search":
        query = " ".join(args[1:])
        _print_json([r.to_json_dict() for r in store.search(query)])
        return

    if cmd == "reset":
        snapshot = store.reset_to_initial_data()
        print(f"Startdata återställd: {len(snapshot.quotes)} offerter, {len(snapshot.templates)} mallar")
        return

    print(USAGE, file=sys.stderr); sys.exit(1)


if __name__ == "__main__":
    main()
