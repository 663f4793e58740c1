"""Export stored subscriptions to CSV or JSON."""

import csv
import json

from .models import Subscription

FIELDNAMES = [
    "provider",
    "product",
    "amount",
    "currency",
    "tag",
    "start_date",
    "next_billing",
    "expiry_date",
    "status",
]


def _row(sub: Subscription) -> dict:
    return {
        "provider": sub.provider,
        "product": sub.product,
        "amount": sub.amount,
        "currency": sub.currency,
        "tag": sub.tag,
        "start_date": sub.start_date.isoformat() if sub.start_date else None,
        "next_billing": sub.next_billing.isoformat() if sub.next_billing else None,
        "expiry_date": sub.expiry_date.isoformat() if sub.expiry_date else None,
        "status": sub.status,
    }


def export_subscriptions(subscriptions: list[Subscription], format: str, output_path: str) -> None:
    """Export subscriptions to a file.

    Args:
        subscriptions: The subscriptions to export.
        format: Output format, either 'csv' or 'json'.
        output_path: Path to write the output file.
    """
    rows = [_row(s) for s in sorted(subscriptions, key=lambda s: s.provider.lower())]

    if format == "csv":
        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
            writer.writeheader()
            for row in rows:
                writer.writerow({k: "" if v is None else v for k, v in row.items()})
    elif format == "json":
        with open(output_path, "w") as f:
            json.dump(rows, f, indent=2)
    else:
        raise ValueError(f"Unsupported export format: {format}")

    print(f"Results saved to {output_path}")
