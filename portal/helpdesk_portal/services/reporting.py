"""
Dashboard reporting — period resolution and ticket aggregation.

Pure functions over ``Ticket`` collections; nothing here touches the network.
Flow for one dashboard request:

  1. ``build_selector`` turns the raw query (period string + optional dates)
     into a ``PeriodSelector``, rejecting start > end.
  2. ``resolve_period`` anchors the selector on today's date.
  3. ``aggregate`` filters the fetched tickets to the range and derives the
     ``DashboardSnapshot``.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence

from helpdesk_portal.errors import ValidationError
from helpdesk_portal.models.reporting import (
    DashboardSnapshot,
    DateRange,
    Period,
    PeriodSelector,
    UrgentTicket,
)
from helpdesk_portal.models.ticket import (
    OPEN_STATUSES,
    Priority,
    Technician,
    Ticket,
    TicketStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = Period.LAST_30_DAYS
URGENT_TICKET_LIMIT = 5

_ROLLING_DAYS = {
    Period.LAST_7_DAYS: 7,
    Period.LAST_30_DAYS: 30,
    Period.LAST_90_DAYS: 90,
}

# Request strings accepted for each period (matched case-insensitively).
_PERIOD_ALIASES = {
    "7days": Period.LAST_7_DAYS,
    "7dias": Period.LAST_7_DAYS,
    "30days": Period.LAST_30_DAYS,
    "30dias": Period.LAST_30_DAYS,
    "90days": Period.LAST_90_DAYS,
    "90dias": Period.LAST_90_DAYS,
    "thismonth": Period.THIS_MONTH,
    "este_mes": Period.THIS_MONTH,
    "lastmonth": Period.LAST_MONTH,
    "mes_anterior": Period.LAST_MONTH,
    "thisyear": Period.THIS_YEAR,
    "este_año": Period.THIS_YEAR,
    "este_ano": Period.THIS_YEAR,
    "custom": Period.CUSTOM,
    "personalizado": Period.CUSTOM,
}


# ═══════════════════════════════════════════════════════════════════
# Period selection
# ═══════════════════════════════════════════════════════════════════

def parse_period(value: Optional[str]) -> Period:
    """
    Map a request string to a ``Period``.

    Unknown or missing values fall back to the last 30 days rather than
    failing the request.
    """
    if not value:
        return DEFAULT_PERIOD
    period = _PERIOD_ALIASES.get(value.strip().lower())
    if period is None:
        logger.warning("Unrecognized period %r, using %s", value, DEFAULT_PERIOD.value)
        return DEFAULT_PERIOD
    return period


def validate_range(start: Optional[date], end: Optional[date]) -> None:
    """
    Reject an explicit range whose start is after its end.

    Raises:
        ValidationError: both dates given and start is after end.
    """
    if start is not None and end is not None and start > end:
        raise ValidationError(
            "The start date cannot be after the end date",
            details=f"start={start.isoformat()} end={end.isoformat()}",
        )


def build_selector(
    period: Optional[str],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> PeriodSelector:
    """
    Build a selector from the dashboard query.

    When both dates are given they form a custom range whatever the period
    says; otherwise the named period is used. A custom period missing one of
    its dates falls back to the default period.

    Raises:
        ValidationError: both dates given and start is after end.
    """
    validate_range(start, end)
    if start is not None and end is not None:
        return PeriodSelector.between(start, end)

    resolved = parse_period(period)
    if resolved is Period.CUSTOM:
        logger.warning("Custom period without both dates, using %s", DEFAULT_PERIOD.value)
        return PeriodSelector.named(DEFAULT_PERIOD)
    return PeriodSelector.named(resolved)


def resolve_period(selector: PeriodSelector, reference_date: Optional[date] = None) -> DateRange:
    """Anchor ``selector`` on ``reference_date`` (default: today) as an inclusive range."""
    today = reference_date or date.today()
    period = selector.period

    if period is Period.CUSTOM:
        return selector.custom

    if period in _ROLLING_DAYS:
        return DateRange(start=today - timedelta(days=_ROLLING_DAYS[period]), end=today)

    if period is Period.THIS_MONTH:
        return DateRange(start=today.replace(day=1), end=today)

    if period is Period.LAST_MONTH:
        last_day = today.replace(day=1) - timedelta(days=1)
        return DateRange(start=last_day.replace(day=1), end=last_day)

    if period is Period.THIS_YEAR:
        return DateRange(start=date(today.year, 1, 1), end=today)

    raise ValueError(f"unhandled period {period!r}")


# ═══════════════════════════════════════════════════════════════════
# Aggregation
# ═══════════════════════════════════════════════════════════════════

def range_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Datetime bounds: start at midnight through the last second of ``end``."""
    lower = datetime.combine(start, time.min)
    upper = datetime.combine(end, time.min) + timedelta(days=1) - timedelta(seconds=1)
    return lower, upper


def filter_by_range(tickets: Optional[Iterable[Ticket]], start: date, end: date) -> list[Ticket]:
    """Tickets created within [start 00:00:00, end 23:59:59], original order kept."""
    lower, upper = range_bounds(start, end)
    return [t for t in (tickets or ()) if lower <= t.created_at <= upper]


def count_by_problem_type(tickets: Iterable[Ticket]) -> dict[str, int]:
    return dict(Counter(t.problem_type for t in tickets))


def count_by_technician(tickets: Iterable[Ticket]) -> dict[str, int]:
    return dict(Counter(t.technician_name for t in tickets if t.technician_name))


def urgent_tickets(tickets: Iterable[Ticket], limit: int = URGENT_TICKET_LIMIT) -> list[UrgentTicket]:
    """High-priority open tickets in their original order, at most ``limit``."""
    urgent: list[UrgentTicket] = []
    for t in tickets:
        if len(urgent) >= limit:
            break
        if t.priority is Priority.HIGH and t.status in OPEN_STATUSES:
            urgent.append(UrgentTicket(
                id=t.id,
                title=f"{t.problem_type} - {t.title}",
                requester_name=t.requester_name,
            ))
    return urgent


def average_resolution_hours(tickets: Optional[Iterable[Ticket]]) -> float:
    """
    Mean hours from creation to resolution over Done tickets.

    Done tickets with no resolution timestamp are skipped; with nothing to
    average the result is 0.0.
    """
    durations = [
        (t.resolved_at - t.created_at).total_seconds() / 3600
        for t in (tickets or ())
        if t.status is TicketStatus.DONE and t.resolved_at is not None
    ]
    return sum(durations) / len(durations) if durations else 0.0


def count_available_technicians(
    technicians: Optional[Sequence[Technician]],
    tickets: Optional[Iterable[Ticket]],
) -> int:
    """Technicians in the roster with no ticket currently in progress."""
    roster = list(technicians or ())
    busy_ids: set[str] = set()
    busy_names: set[str] = set()
    for t in tickets or ():
        if t.status is TicketStatus.IN_PROGRESS:
            if t.technician_id:
                busy_ids.add(t.technician_id)
            if t.technician_name:
                busy_names.add(t.technician_name)

    available = sum(
        1 for tech in roster
        if tech.id not in busy_ids and tech.full_name not in busy_names
    )
    return max(0, min(available, len(roster)))


def aggregate(
    tickets: Optional[Sequence[Ticket]],
    start: date,
    end: date,
    technicians: Optional[Sequence[Technician]] = None,
    urgent_limit: int = URGENT_TICKET_LIMIT,
) -> DashboardSnapshot:
    """
    Build the dashboard snapshot for ``tickets`` created in [start, end].

    Technician availability looks at every ticket passed in, not only the
    ones inside the range, since it describes who is busy right now.
    """
    all_tickets = list(tickets or ())
    in_range = filter_by_range(all_tickets, start, end)
    roster = list(technicians or ())

    return DashboardSnapshot(
        total_tickets=len(in_range),
        average_resolution_hours=average_resolution_hours(in_range),
        technicians_total=len(roster),
        technicians_available=count_available_technicians(roster, all_tickets),
        tickets_by_problem_type=count_by_problem_type(in_range),
        tickets_by_technician=count_by_technician(in_range),
        urgent_tickets=urgent_tickets(in_range, urgent_limit),
    )
