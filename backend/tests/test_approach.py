import math

import pytest

from conftest import DAY_MS, T0, raw_approach, raw_neo

from neowatch.core.errors import TransportFailure
from neowatch.services.approach import ApproachState, project_epoch
from neowatch.services.neows import parse_neo


class TestProjectEpoch:
    def test_smallest_whole_period_past_now(self):
        last = T0 - 400 * DAY_MS
        projected = project_epoch([last - 1000 * DAY_MS, last], 365.0, T0)
        # 400 days ago + 365 is still past, + 730 is 330 days ahead
        assert projected == last + 730 * DAY_MS
        assert projected > T0
        assert projected - 365 * DAY_MS <= T0

    def test_zero_period_is_unresolvable(self):
        assert project_epoch([T0 - DAY_MS], 0.0, T0) is None

    def test_non_finite_period_is_unresolvable(self):
        assert project_epoch([T0 - DAY_MS], math.nan, T0) is None
        assert project_epoch([T0 - DAY_MS], math.inf, T0) is None
        assert project_epoch([T0 - DAY_MS], None, T0) is None

    def test_negative_period_terminates(self):
        assert project_epoch([T0 - DAY_MS], -30.0, T0) is None

    def test_iteration_bound(self):
        # one-day period, 2000 days behind: needs more than 1000 steps
        assert project_epoch([T0 - 2000 * DAY_MS], 1.0, T0) is None
        assert project_epoch([T0 - 2000 * DAY_MS], 1.0, T0, max_iterations=2001) == T0 + DAY_MS

    def test_needs_a_known_epoch(self):
        assert project_epoch([], 365.0, T0) is None


def _feed_neo(neo_id, *epochs):
    return parse_neo(raw_neo(neo_id, [raw_approach(e) for e in epochs]))


class TestApproachResolver:
    async def test_future_feed_event_needs_no_lookup(self, ctx, neows):
        neo = _feed_neo("a", T0 - DAY_MS, T0 + 3 * DAY_MS, T0 + 2 * DAY_MS)
        resolution = await ctx.resolver.resolve(neo, T0)

        assert resolution.state == ApproachState.RESOLVED_EXPLICIT
        assert resolution.neo.next_epoch == T0 + 2 * DAY_MS
        assert resolution.neo.estimated is False
        assert neows.calls == []

    async def test_future_detail_event(self, ctx, neows):
        neows.details["b"] = raw_neo("b", [raw_approach(T0 - 10 * DAY_MS), raw_approach(T0 + 40 * DAY_MS)])
        resolution = await ctx.resolver.resolve(_feed_neo("b", T0 - 10 * DAY_MS), T0)

        assert resolution.state == ApproachState.RESOLVED_EXPLICIT
        assert resolution.neo.next_epoch == T0 + 40 * DAY_MS
        assert resolution.neo.details.id == "b"
        assert resolution.failure is None

    async def test_projects_from_orbital_period(self, ctx, neows):
        last = T0 - 400 * DAY_MS
        neows.details["c"] = raw_neo("c", [raw_approach(last - 365 * DAY_MS), raw_approach(last)], orbital_period="365")
        resolution = await ctx.resolver.resolve(_feed_neo("c", T0 - DAY_MS), T0)

        assert resolution.state == ApproachState.RESOLVED_ESTIMATED
        assert resolution.neo.estimated is True
        assert resolution.neo.next_epoch == last + 730 * DAY_MS

    async def test_zero_period_detail_is_unresolvable(self, ctx, neows):
        neows.details["d"] = raw_neo("d", [raw_approach(T0 - DAY_MS)], orbital_period="0")
        resolution = await ctx.resolver.resolve(_feed_neo("d", T0 - DAY_MS), T0)

        assert resolution.state == ApproachState.UNRESOLVABLE
        assert resolution.neo.next_epoch is None
        assert resolution.neo.details is not None

    async def test_detail_failure_is_downgraded(self, ctx, neows):
        neows.status["neo/e"] = 500
        resolution = await ctx.resolver.resolve(_feed_neo("e", T0 - DAY_MS), T0)

        assert resolution.state == ApproachState.UNRESOLVABLE
        assert resolution.neo.next_epoch is None
        assert resolution.neo.details is None
        assert isinstance(resolution.failure, TransportFailure)

    @pytest.mark.parametrize("period", ["365", None])
    async def test_no_known_epochs_is_unresolvable(self, ctx, neows, period):
        neows.details["f"] = raw_neo("f", [], orbital_period=period)
        resolution = await ctx.resolver.resolve(_feed_neo("f"), T0)
        assert resolution.state == ApproachState.UNRESOLVABLE
