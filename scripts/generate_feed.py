"""
Synthetic planList feed generator for Plan Search.

Writes a deterministic pseudo-random provider feed to disk, for local
ingestion runs and load tests. Serve the output directory with any static
HTTP server and register its URL with `plansearch add-provider`.
"""

from __future__ import annotations

import random
import sys
import time
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import typer

from plansearch.domain.timestamps import TIMESTAMP_FORMAT

app = typer.Typer(help="Generate a synthetic planList XML feed.")

TITLES = ["Concert", "Stand-up", "Theatre", "Opera", "Festival", "Workshop", "Match"]
ZONES = ["Platea", "Anfiteatro", "Palco", "Grada", "Pista"]


def _ts(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def build_feed(
    base_plans: int,
    plans_per_base: int,
    seed: int,
    start: datetime,
    offline_ratio: float = 0.2,
) -> ET.Element:
    """Build the planList tree; the same arguments always yield the same feed."""
    rng = random.Random(seed)
    root = ET.Element("planList", version="1.0")
    output = ET.SubElement(root, "output")

    for base_idx in range(base_plans):
        base_id = str(1000 + base_idx)
        sell_mode = "offline" if rng.random() < offline_ratio else "online"
        base = ET.SubElement(
            output,
            "base_plan",
            base_plan_id=base_id,
            sell_mode=sell_mode,
            title=f"{rng.choice(TITLES)} #{base_idx}",
            organizer_company_id=str(rng.randint(1, 20)),
        )
        for plan_idx in range(plans_per_base):
            plan_start = start + timedelta(
                days=rng.randint(0, 365), hours=rng.randint(8, 22), minutes=rng.choice([0, 30])
            )
            plan_end = plan_start + timedelta(hours=rng.randint(1, 4))
            plan = ET.SubElement(
                base,
                "plan",
                plan_id=f"{base_id}{plan_idx:03d}",
                plan_start_date=_ts(plan_start),
                plan_end_date=_ts(plan_end),
                sell_from=_ts(plan_start - timedelta(days=rng.randint(30, 120))),
                sell_to=_ts(plan_start - timedelta(hours=1)),
                sold_out="true" if rng.random() < 0.1 else "false",
            )
            for zone_idx in range(rng.randint(1, 4)):
                ET.SubElement(
                    plan,
                    "zone",
                    zone_id=str(zone_idx + 1),
                    capacity=str(rng.randint(10, 500)),
                    price=f"{rng.uniform(5, 150):.2f}",
                    name=ZONES[zone_idx % len(ZONES)],
                    numbered="true" if rng.random() < 0.5 else "false",
                )
    return root


@app.command()
def main(
    base_plans: int = typer.Option(
        100,
        "--base-plans",
        "-b",
        help="Number of base plans in the feed.",
    ),
    plans_per_base: int = typer.Option(
        3,
        "--plans-per-base",
        "-p",
        help="Plans generated under each base plan.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    start: Optional[str] = typer.Option(
        None,
        "--start",
        help=f"Earliest plan start, {TIMESTAMP_FORMAT} (default: today 00:00).",
    ),
    output: Path = typer.Option(
        Path("feeds/planlist.xml"),
        "--output",
        "-o",
        help="Where to write the feed.",
    ),
) -> None:
    """
    Generate a planList feed and write it to disk.
    """
    begin = time.perf_counter()
    if start:
        origin = datetime.strptime(start, TIMESTAMP_FORMAT)
    else:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        origin = now.replace(hour=0, minute=0, second=0, microsecond=0)

    tree = ET.ElementTree(build_feed(base_plans, plans_per_base, seed, origin))
    output.parent.mkdir(parents=True, exist_ok=True)
    tree.write(output, encoding="utf-8", xml_declaration=True)

    duration = time.perf_counter() - begin
    typer.echo(
        f"Wrote {base_plans:,} base plan(s) x {plans_per_base} plan(s) -> {output} "
        f"in {duration:.2f}s (seed={seed})"
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
