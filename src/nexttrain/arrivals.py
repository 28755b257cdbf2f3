"""Turns schedule clocks into countdowns for a station's lines and headsigns."""

import logging
import math
import random
import re
from datetime import datetime
from typing import List, Mapping, Optional, Sequence, Tuple

from .config import (
    MAX_ARRIVALS_PER_GROUP,
    MAX_SCHEDULED_CANDIDATES,
    MAX_SHOW_MIN,
    SIM_BASE,
    SIM_COUNT,
    SIM_JITTER,
    SIM_STEP,
    SOON_WINDOW_MIN,
)
from .exceptions import ClockParseError
from .models import ESTIMATED, REALTIME, SCHEDULED, ArrivalEstimate, ArrivalGroup

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

# (line, headsign) -> live ETAs in seconds
ConfirmedEtas = Mapping[Tuple[str, str], Sequence[int]]

_CLOCK_RE = re.compile(r"^\s*(\d{1,3}):([0-5]\d)(?::([0-5]\d))?\s*$")


def parse_clock(time_str: str) -> int:
    """
    Parse a GTFS clock ("HH:MM:SS") into seconds since the start of the service day.

    Hours may be 24 or more for trips that run past midnight, so the result
    can exceed 86400.

    Raises:
        ClockParseError: If the string is not a clock.
    """
    match = _CLOCK_RE.match(str(time_str))
    if not match:
        raise ClockParseError(f"Invalid schedule time {time_str!r}")
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + int(seconds or 0)


def now_seconds(now: Optional[datetime] = None) -> int:
    """Wall-clock seconds since midnight (0-86399)."""
    now = now or datetime.now()
    return now.hour * 3600 + now.minute * 60 + now.second


def eta_seconds_from_gtfs(time_str: str, now_sec: int) -> int:
    """
    Seconds from ``now_sec`` until a schedule clock.

    Clocks of 24:00:00 or later belong to the next calendar day. A clock that
    is earlier than now is also treated as tomorrow's, which means a train
    that already left today counts down a full day instead of being
    dropped. Near the end of a service day this can show a countdown for the
    wrong day's train.
    """
    raw = parse_clock(time_str)
    norm = raw % SECONDS_PER_DAY

    if raw >= SECONDS_PER_DAY:
        return norm + SECONDS_PER_DAY - now_sec

    # Already passed today: roll over to tomorrow
    if norm < now_sec:
        return norm + SECONDS_PER_DAY - now_sec

    return norm - now_sec


def format_eta(seconds: float) -> str:
    """Countdown label: "Now", "1 min" or "N min"."""
    minutes = math.floor(seconds / 60 + 0.5)
    if minutes <= 0:
        return "Now"
    if minutes == 1:
        return "1 min"
    return f"{minutes} min"


def simulate_etas(
    base: int = SIM_BASE,
    count: int = SIM_COUNT,
    jitter: int = SIM_JITTER,
    step: int = SIM_STEP,
    rng: Optional[random.Random] = None,
) -> List[int]:
    """
    Plausible minute counts for when nothing is scheduled soon.

    Each value is ``base + i * step`` plus a random offset in
    ``[-jitter, jitter]``, never below 1. Returned ascending.
    """
    rng = rng or random
    minutes = [max(1, base + i * step + rng.randint(-jitter, jitter)) for i in range(count)]
    return sorted(minutes)


class EstimateSource:
    """Produces arrival estimates for one line and headsign at a station."""

    source = ""

    def estimates(self, times: Sequence[str], now_sec: int) -> List[ArrivalEstimate]:
        """
        Estimates for the given schedule clocks, ascending by ETA.

        Args:
            times: Schedule clocks listed for the line/headsign.
            now_sec: Wall-clock seconds since midnight.
        """
        raise NotImplementedError

    def _estimate(self, eta_seconds: int, time_str: Optional[str] = None) -> ArrivalEstimate:
        return ArrivalEstimate(
            eta_seconds=int(eta_seconds),
            label=format_eta(eta_seconds),
            source=self.source,
            time_str=time_str,
        )


class ScheduledSource(EstimateSource):
    """Upcoming entries from the schedule, within the display horizon."""

    source = SCHEDULED

    def __init__(self, horizon_min: int = MAX_SHOW_MIN, limit: int = MAX_SCHEDULED_CANDIDATES):
        self.horizon_sec = horizon_min * 60
        self.limit = limit

    def estimates(self, times: Sequence[str], now_sec: int) -> List[ArrivalEstimate]:
        upcoming = []
        for time_str in times:
            try:
                eta = eta_seconds_from_gtfs(time_str, now_sec)
            except ClockParseError:
                continue
            if 0 <= eta <= self.horizon_sec:
                upcoming.append((eta, time_str))

        upcoming.sort(key=lambda pair: pair[0])
        return [self._estimate(eta, time_str) for eta, time_str in upcoming[: self.limit]]


class SynthesizedSource(EstimateSource):
    """Made-up but plausible countdowns; ignores the schedule."""

    source = ESTIMATED

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        base: int = SIM_BASE,
        count: int = SIM_COUNT,
        jitter: int = SIM_JITTER,
        step: int = SIM_STEP,
    ):
        self.rng = rng or random.Random()
        self.base = base
        self.count = count
        self.jitter = jitter
        self.step = step

    def estimates(self, times: Sequence[str], now_sec: int) -> List[ArrivalEstimate]:
        minutes = simulate_etas(self.base, self.count, self.jitter, self.step, rng=self.rng)
        return [self._estimate(m * 60) for m in minutes]


class ConfirmedSource(EstimateSource):
    """Countdowns confirmed by a live feed; these replace the schedule."""

    source = REALTIME

    def __init__(self, etas: Sequence[int], horizon_min: int = MAX_SHOW_MIN):
        self.etas = etas
        self.horizon_sec = horizon_min * 60

    def estimates(self, times: Sequence[str], now_sec: int) -> List[ArrivalEstimate]:
        return [self._estimate(eta) for eta in sorted(self.etas) if 0 <= eta <= self.horizon_sec]


def _by_eta(estimates: List[ArrivalEstimate]) -> List[ArrivalEstimate]:
    return sorted(estimates, key=lambda e: e.eta_seconds)


class ArrivalEstimator:
    """
    Computes the next arrivals at a station from the arrival index.

    The estimator only reads the index, so one instance can serve many
    concurrent callers. Call it again (e.g. every 15 seconds) to refresh.
    """

    def __init__(
        self,
        station_arrivals: Mapping[str, Mapping[str, Mapping[str, Sequence[str]]]],
        rng: Optional[random.Random] = None,
        horizon_min: int = MAX_SHOW_MIN,
        soon_min: int = SOON_WINDOW_MIN,
        per_group: int = MAX_ARRIVALS_PER_GROUP,
    ):
        """
        Args:
            station_arrivals: station -> line -> headsign -> sorted clocks.
            rng: Random source for synthesized estimates.
            horizon_min: Entries further away than this are never shown.
            soon_min: If nothing is scheduled this soon, estimates are synthesized.
            per_group: Maximum estimates per line/headsign.
        """
        self.station_arrivals = station_arrivals
        self.horizon_min = horizon_min
        self.soon_sec = soon_min * 60
        self.per_group = per_group
        self.scheduled = ScheduledSource(horizon_min=horizon_min)
        self.synthesized = SynthesizedSource(rng=rng)

    def upcoming(
        self,
        times: Sequence[str],
        now_sec: int,
        confirmed: Optional[Sequence[int]] = None,
    ) -> List[ArrivalEstimate]:
        """Estimates for one line/headsign, ascending, at most ``per_group``."""
        if confirmed:
            live = ConfirmedSource(confirmed, horizon_min=self.horizon_min).estimates(times, now_sec)
            if live:
                return live[: self.per_group]

        scheduled = self.scheduled.estimates(times, now_sec)
        if any(e.eta_seconds <= self.soon_sec for e in scheduled):
            return scheduled[: self.per_group]

        combined = self.synthesized.estimates(times, now_sec) + scheduled[:1]
        return _by_eta(combined)[: self.per_group]

    def arrivals_for_station(
        self,
        station_id: str,
        now_sec: int,
        confirmed: Optional[ConfirmedEtas] = None,
    ) -> List[ArrivalGroup]:
        """
        Arrival groups for every line/headsign at a station.

        Args:
            station_id: Station id as used in the arrival index.
            now_sec: Wall-clock seconds since midnight.
            confirmed: Optional live ETAs keyed by (line, headsign); these
                take precedence over the schedule for that key.

        Returns:
            Groups ordered by their earliest ETA. Unknown stations give [].
        """
        by_line = self.station_arrivals.get(station_id)
        if not by_line:
            return []

        confirmed = confirmed or {}
        groups: List[ArrivalGroup] = []

        for line, by_headsign in by_line.items():
            line_key = str(line).upper()
            for headsign, times in (by_headsign or {}).items():
                upcoming = self.upcoming(times or [], now_sec, confirmed.get((line_key, headsign)))
                if not upcoming:
                    continue
                groups.append(ArrivalGroup(line=line_key, headsign=headsign, upcoming=tuple(upcoming)))

        groups.sort(key=lambda g: g.first_eta if g.first_eta is not None else float("inf"))
        logger.debug(f"Computed {len(groups)} arrival groups for station {station_id}")
        return groups

