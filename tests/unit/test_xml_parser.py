from __future__ import annotations

from datetime import datetime

import pytest

from plansearch.domain.models import SellMode
from plansearch.errors import ParseError
from plansearch.ingestion.xml_parser import parse_plan_list

FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<planList version="1.0">
  <output>
    <base_plan base_plan_id="291" sell_mode="online" title="Camela en concierto" organizer_company_id="1">
      <plan plan_start_date="2021-06-30T21:00:00" plan_end_date="2021-06-30T22:00:00"
            plan_id="291" sell_from="2020-07-01T00:00:00" sell_to="2021-06-30T20:00:00" sold_out="false">
        <zone zone_id="40" capacity="243" price="20.00" name="Platea" numbered="true"/>
        <zone zone_id="38" capacity="100" price="15.00" name="Grada 2" numbered="false"/>
        <zone zone_id="30" capacity="90" price="n/a" name="Palco" numbered="false"/>
      </plan>
    </base_plan>
    <base_plan base_plan_id="322" sell_mode="OFFLINE" title="Pantomima Full">
      <plan plan_start_date="2021-02-10T20:00:00" plan_end_date="2021-02-10T21:30:00" plan_id="1642"
            sold_out="true"/>
      <plan plan_start_date="not a date" plan_end_date="2021-02-11T21:30:00" plan_id="1643"/>
      <plan plan_start_date="2021-02-12T20:00:00" plan_end_date="2021-02-12T21:30:00"/>
    </base_plan>
    <base_plan sell_mode="online" title="No id"/>
    <base_plan base_plan_id="1591" sell_mode="hybrid" title="Odd mode"/>
  </output>
</planList>
"""

EXPECTED_BASE_PLANS = 3


def test_parses_base_plans_plans_and_zones() -> None:
    base_plans = parse_plan_list(FEED)

    assert [bp.base_plan_id for bp in base_plans] == ["291", "322", "1591"]
    concert = base_plans[0]
    assert concert.sell_mode is SellMode.ONLINE
    assert concert.title == "Camela en concierto"
    assert concert.organizer_company_id == "1"

    (plan,) = concert.plans
    assert plan.plan_id == "291"
    assert plan.plan_start_date == datetime(2021, 6, 30, 21, 0, 0)
    assert plan.sell_to == datetime(2021, 6, 30, 20, 0, 0)
    assert plan.sold_out is False
    assert [(z.zone_id, z.price, z.numbered) for z in plan.zones] == [
        ("40", 20.0, True),
        ("38", 15.0, False),
        ("30", None, False),
    ]


def test_drops_invalid_elements_and_keeps_the_rest() -> None:
    base_plans = parse_plan_list(FEED)

    assert len(base_plans) == EXPECTED_BASE_PLANS
    comedy = base_plans[1]
    assert comedy.sell_mode is SellMode.OFFLINE
    assert [p.plan_id for p in comedy.plans] == ["1642"]
    assert comedy.plans[0].sold_out is True
    assert base_plans[2].sell_mode is None


def test_accepts_text_input() -> None:
    assert parse_plan_list(FEED.decode("utf-8"))[0].base_plan_id == "291"


def test_feed_without_output_is_empty() -> None:
    assert parse_plan_list(b'<planList version="1.0"/>') == []


@pytest.mark.parametrize("content", [b"<planList><output>", b"", b"<events/>"])
def test_rejects_malformed_or_foreign_documents(content: bytes) -> None:
    with pytest.raises(ParseError):
        parse_plan_list(content)
