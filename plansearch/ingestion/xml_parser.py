"""
Parser for provider `planList` XML feeds.

Expected shape (attributes only, no text nodes)::

    <planList version="1.0">
      <output>
        <base_plan base_plan_id="291" sell_mode="online" title="..." organizer_company_id="1">
          <plan plan_id="291" plan_start_date="2021-06-30T21:00:00"
                plan_end_date="2021-06-30T22:00:00" sell_from="..." sell_to="..." sold_out="false">
            <zone zone_id="40" capacity="243" price="20.00" name="Platea" numbered="true"/>
          </plan>
        </base_plan>
      </output>
    </planList>

Parsing is tolerant per element: a base plan or plan with a missing id or an
unparsable date is logged and dropped, a zone with an unparsable price keeps
`price=None`. Only a document that is not a planList fails as a whole.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List, Optional, Union

from plansearch.domain.models import BasePlanRecord, PlanRecord, SellMode, ZoneRecord
from plansearch.domain.timestamps import parse_timestamp
from plansearch.errors import ParseError
from plansearch.utils.logging import get_logger

log = get_logger(__name__)

_TRUE = {"true", "1", "yes"}


def _attr(elem: ET.Element, name: str) -> Optional[str]:
    value = elem.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _bool(elem: ET.Element, name: str) -> bool:
    value = _attr(elem, name)
    return value is not None and value.lower() in _TRUE


def _int(elem: ET.Element, name: str) -> Optional[int]:
    value = _attr(elem, name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _float(elem: ET.Element, name: str) -> Optional[float]:
    value = _attr(elem, name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _sell_mode(value: Optional[str]) -> Optional[SellMode]:
    if value is None:
        return None
    try:
        return SellMode(value.lower())
    except ValueError:
        return None


def _parse_zone(elem: ET.Element) -> ZoneRecord:
    return ZoneRecord(
        zone_id=_attr(elem, "zone_id"),
        name=_attr(elem, "name"),
        capacity=_int(elem, "capacity"),
        price=_float(elem, "price"),
        numbered=_bool(elem, "numbered"),
    )


def _parse_plan(elem: ET.Element, base_plan_id: str) -> Optional[PlanRecord]:
    plan_id = _attr(elem, "plan_id")
    if plan_id is None:
        log.warning("Plan without plan_id dropped", extra={"base_plan_id": base_plan_id})
        return None
    try:
        start = parse_timestamp(elem.get("plan_start_date", ""))
        end = parse_timestamp(elem.get("plan_end_date", ""))
    except ValueError as exc:
        log.warning(
            "Plan with unparsable dates dropped",
            extra={"base_plan_id": base_plan_id, "plan_id": plan_id, "error": str(exc)},
        )
        return None

    sell_window = []
    for name in ("sell_from", "sell_to"):
        raw = _attr(elem, name)
        try:
            sell_window.append(parse_timestamp(raw) if raw else None)
        except ValueError:
            sell_window.append(None)

    return PlanRecord(
        plan_id=plan_id,
        plan_start_date=start,
        plan_end_date=end,
        sell_from=sell_window[0],
        sell_to=sell_window[1],
        sold_out=_bool(elem, "sold_out"),
        zones=[_parse_zone(z) for z in elem.findall("zone")],
    )


def _parse_base_plan(elem: ET.Element) -> Optional[BasePlanRecord]:
    base_plan_id = _attr(elem, "base_plan_id")
    if base_plan_id is None:
        log.warning("Base plan without base_plan_id dropped", extra={"title": elem.get("title")})
        return None
    plans = [p for p in (_parse_plan(e, base_plan_id) for e in elem.findall("plan")) if p]
    return BasePlanRecord(
        base_plan_id=base_plan_id,
        title=elem.get("title", "").strip(),
        sell_mode=_sell_mode(_attr(elem, "sell_mode")),
        organizer_company_id=_attr(elem, "organizer_company_id"),
        plans=plans,
    )


def parse_plan_list(content: Union[str, bytes]) -> List[BasePlanRecord]:
    """
    Parse a planList document into base plans.

    Raises
    ------
    ParseError
        If the document is not well-formed XML or its root is not planList.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ParseError(f"Malformed XML: {exc}") from exc
    if root.tag != "planList":
        raise ParseError(f"Expected <planList> root, got <{root.tag}>")

    output = root.find("output")
    if output is None:
        return []
    base_plans = [bp for bp in (_parse_base_plan(e) for e in output.findall("base_plan")) if bp]
    log.debug("Feed parsed", extra={"base_plans": len(base_plans)})
    return base_plans


__all__ = ["parse_plan_list"]
