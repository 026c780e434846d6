"""Tests for the autocomplete controller."""
import pytest
from autocomplete import AutocompleteController, SearchState
from scheduler import FakeScheduler
from weather_data import CitySuggestion
from weather_provider import CitySearchProviderBase, RateLimited, UpstreamError

PARIS = CitySuggestion(name="Paris", country="France", state="Île-de-France", population=2165423)
PARIS_TX = CitySuggestion(name="Paris", country="United States of America", state="Texas", population=24171)
PARMA = CitySuggestion(name="Parma", country="Italy", state="Emilia-Romagna", population=195687)


class ScriptedClient(CitySearchProviderBase):
    """City search client that replays scripted outcomes in order."""

    def __init__(self, *outcomes, default=None):
        self.outcomes = list(outcomes)
        self.default = default if default is not None else []
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def searches():
    return []


def make_controller(client, scheduler, searches):
    controller = AutocompleteController(client, searches.append, scheduler=scheduler)
    controller.focus()
    return controller


def type_text(controller, scheduler, text, gap=0.1):
    for i in range(1, len(text) + 1):
        controller.input_changed(text[:i])
        scheduler.advance(gap)


def test_debounce_triggers_single_search(scheduler, searches):
    """Keystrokes within 300 ms of each other trigger exactly one search."""
    client = ScriptedClient([PARIS, PARIS_TX])
    controller = make_controller(client, scheduler, searches)

    type_text(controller, scheduler, "Paris")
    assert client.queries == []
    assert controller.state == SearchState.DEBOUNCING

    scheduler.advance(0.3)

    assert client.queries == ["Paris"]
    assert controller.suggestions == [PARIS, PARIS_TX]
    assert controller.has_results is True
    assert controller.show_suggestions is True
    assert controller.panel_visible is True
    assert controller.state == SearchState.SETTLED


def test_debounce_waits_for_quiet_period(scheduler, searches):
    client = ScriptedClient([PARIS])
    controller = make_controller(client, scheduler, searches)

    controller.input_changed("Par")
    scheduler.advance(0.29)
    assert client.queries == []
    scheduler.advance(0.02)
    assert client.queries == ["Par"]


def test_search_query_is_trimmed(scheduler, searches):
    client = ScriptedClient([PARIS])
    controller = make_controller(client, scheduler, searches)

    controller.input_changed("  Paris ")
    scheduler.advance(0.3)

    assert client.queries == ["Paris"]


def test_whitespace_input_clears_without_search(scheduler, searches):
    client = ScriptedClient([PARIS])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    assert controller.suggestions == [PARIS]

    controller.input_changed("   ")

    assert controller.suggestions == []
    assert controller.show_suggestions is False
    assert controller.has_results is False
    assert controller.state == SearchState.IDLE
    scheduler.advance(1.0)
    assert client.queries == ["Paris"]


def test_rate_limited_retries_then_succeeds(scheduler, searches):
    """Three rate-limited responses followed by a success populate suggestions."""
    client = ScriptedClient(
        RateLimited("rate limit exceeded"),
        RateLimited("rate limit exceeded"),
        RateLimited("rate limit exceeded"),
        [PARIS],
    )
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)

    assert controller.retry_count == 1
    assert controller.state == SearchState.RATE_LIMITED_RETRYING
    assert controller.status_text == "Retrying... (Attempt 1/3)"

    scheduler.advance(1.0)
    assert controller.retry_count == 2
    scheduler.advance(1.0)
    assert controller.retry_count == 3
    scheduler.advance(1.0)

    assert client.queries == ["Paris"] * 4
    assert controller.suggestions == [PARIS]
    assert controller.retry_count == 0
    assert controller.state == SearchState.SETTLED


def test_rate_limited_gives_up_after_three_retries(scheduler, searches):
    """A fourth rate-limited response ends retrying with an empty list."""
    client = ScriptedClient(default=RateLimited("rate limit exceeded"))
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)

    scheduler.advance(1.0)
    scheduler.advance(1.0)
    scheduler.advance(1.0)
    assert len(client.queries) == 4

    scheduler.advance(10.0)

    assert len(client.queries) == 4
    assert scheduler.pending == 0
    assert controller.suggestions == []
    assert controller.is_searching is False
    assert controller.state == SearchState.SETTLED


def test_retry_uses_throttled_query(scheduler, searches):
    """The retry searches the query that was throttled, not re-read input."""
    client = ScriptedClient(RateLimited("rate limit exceeded"), [PARIS])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)

    scheduler.advance(1.0)

    assert client.queries == ["Paris", "Paris"]


def test_retry_dropped_when_input_changes(scheduler, searches):
    client = ScriptedClient(RateLimited("rate limit exceeded"), [PARMA])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)

    controller.input_changed("Parma")
    scheduler.advance(1.0)

    assert client.queries == ["Paris", "Parma"]
    assert controller.suggestions == [PARMA]
    assert controller.retry_count == 0


def test_upstream_error_clears_without_retry(scheduler, searches):
    client = ScriptedClient([PARIS], UpstreamError("Failed to fetch cities"))
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    assert controller.suggestions == [PARIS]

    controller.input_changed("Parisx")
    scheduler.advance(0.3)

    assert controller.suggestions == []
    assert controller.state == SearchState.SETTLED
    scheduler.advance(5.0)
    assert client.queries == ["Paris", "Parisx"]


def test_unexpected_error_does_not_propagate(scheduler, searches):
    client = ScriptedClient(RuntimeError("boom"))
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")

    scheduler.advance(0.3)

    assert controller.suggestions == []
    assert controller.is_searching is False


def test_stale_results_are_discarded(scheduler, searches):
    """A response for a superseded query never replaces newer input's state."""
    controller = None

    class SlowClient(CitySearchProviderBase):
        def __init__(self):
            self.queries = []

        def search(self, query):
            self.queries.append(query)
            if query == "Pa":
                # User keeps typing while this request is in flight
                controller.input_changed("Par")
                return [PARIS_TX]
            return [PARMA]

    client = SlowClient()
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Pa")
    scheduler.advance(0.3)

    assert controller.suggestions == []
    assert controller.state == SearchState.DEBOUNCING
    assert controller.is_searching is False

    scheduler.advance(0.3)
    assert client.queries == ["Pa", "Par"]
    assert controller.suggestions == [PARMA]


def test_no_results(scheduler, searches):
    client = ScriptedClient([])
    controller = make_controller(client, scheduler, searches)
    assert controller.status_text == "Type to search cities"

    controller.input_changed("Zzzz")
    scheduler.advance(0.3)

    assert controller.has_results is False
    assert controller.show_suggestions is True
    assert controller.status_text == "No cities found"


@pytest.fixture
def settled(scheduler, searches):
    """Controller showing three suggestions."""
    client = ScriptedClient([PARIS, PARIS_TX, PARMA])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Par")
    scheduler.advance(0.3)
    assert len(controller.suggestions) == 3
    return controller


def test_arrow_down_clamps_at_last_index(settled):
    indexes = [settled.highlighted_index]
    for _ in range(4):
        assert settled.key_down("ArrowDown") is True
        indexes.append(settled.highlighted_index)

    assert indexes == [-1, 0, 1, 2, 2]


def test_arrow_up_clamps_at_minus_one(settled):
    settled.key_down("ArrowDown")
    assert settled.highlighted_index == 0

    settled.key_down("ArrowUp")
    assert settled.highlighted_index == -1
    settled.key_down("ArrowUp")
    assert settled.highlighted_index == -1


def test_enter_commits_highlighted_suggestion(settled, searches):
    settled.key_down("ArrowDown")
    settled.key_down("ArrowDown")

    assert settled.key_down("Enter") is True

    assert searches == ["Paris"]
    assert settled.text == "Paris"
    assert settled.show_suggestions is False
    assert settled.highlighted_index == -1


def test_enter_without_highlight_submits_text(settled, searches):
    settled.input_changed("Paris ")

    assert settled.key_down("Enter") is True

    assert searches == ["Paris"]
    assert settled.show_suggestions is False


def test_escape_closes_panel(settled):
    settled.key_down("ArrowDown")

    assert settled.key_down("Escape") is True

    assert settled.show_suggestions is False
    assert settled.highlighted_index == -1
    assert settled.key_down("ArrowDown") is False
    assert settled.highlighted_index == -1


def test_other_keys_are_ignored(settled):
    assert settled.key_down("Tab") is False


def test_select_sets_text_and_skips_pending_search(settled, scheduler, searches):
    settled.input_changed("Parm")
    settled.select(PARMA)

    assert settled.text == "Parma"
    assert searches == ["Parma"]
    assert scheduler.pending == 0


def test_submit_blank_does_nothing(scheduler, searches):
    controller = make_controller(ScriptedClient(), scheduler, searches)
    controller.input_changed("   ")

    assert controller.submit() is False
    assert searches == []


def test_hover_highlights(settled):
    settled.highlight(1)
    assert settled.highlighted_index == 1
    settled.highlight(7)
    assert settled.highlighted_index == 1


def test_blur_hides_panel_after_grace_delay(settled, scheduler):
    settled.blur()
    scheduler.advance(0.15)
    assert settled.panel_visible is True

    scheduler.advance(0.1)
    assert settled.panel_visible is False
    assert settled.is_focused is False


def test_click_during_blur_grace_still_commits(settled, scheduler, searches):
    """Clicking a suggestion blurs the input first; the click must still land."""
    settled.blur()
    scheduler.advance(0.05)
    settled.select(settled.suggestions[2])

    assert searches == ["Parma"]


def test_focus_cancels_pending_blur(settled, scheduler):
    settled.blur()
    scheduler.advance(0.1)
    settled.focus()
    scheduler.advance(1.0)

    assert settled.is_focused is True
    assert settled.panel_visible is True


def test_new_session_for_same_text_gets_full_retries(scheduler, searches):
    """After giving up on a query, retyping it starts again from retry 0."""
    rate_limited = [RateLimited("rate limit exceeded") for _ in range(5)]
    client = ScriptedClient(*rate_limited, [PARIS])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    for _ in range(3):
        scheduler.advance(1.0)
    assert len(client.queries) == 4
    assert controller.retry_count == 3

    controller.input_changed("Pari")
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    assert controller.retry_count == 1
    assert controller.state == SearchState.RATE_LIMITED_RETRYING

    scheduler.advance(1.0)

    assert len(client.queries) == 6
    assert controller.suggestions == [PARIS]
    assert controller.retry_count == 0


def test_debounce_cancels_pending_retry(scheduler, searches):
    """Retyping the same text mid-retry leaves a single retry chain."""
    client = ScriptedClient(RateLimited("rate limit exceeded"), RateLimited("rate limit exceeded"), [PARIS])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    scheduler.advance(0.2)

    controller.input_changed("Pari")
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    assert client.queries == ["Paris", "Paris"]
    assert scheduler.pending == 1

    scheduler.advance(1.0)

    assert client.queries == ["Paris"] * 3
    assert controller.suggestions == [PARIS]
    assert scheduler.pending == 0


def test_select_during_fetch_settles_state(scheduler, searches):
    """Clicking a suggestion while a search is in flight does not leave it searching."""
    controller = None

    class ClickingClient(CitySearchProviderBase):
        def search(self, query):
            controller.select("Parma")
            return [PARIS]

    controller = make_controller(ClickingClient(), scheduler, searches)
    controller.input_changed("Par")
    scheduler.advance(0.3)

    assert searches == ["Parma"]
    assert controller.text == "Parma"
    assert controller.is_searching is False
    assert controller.state == SearchState.IDLE
    assert controller.suggestions == []
    assert controller.status_text == "Type to search cities"


def test_superseded_retry_leaves_debounce_state(scheduler, searches):
    """A retry firing for old text neither searches nor flips the state."""
    client = ScriptedClient(RateLimited("rate limit exceeded"), [PARMA])
    controller = make_controller(client, scheduler, searches)
    controller.input_changed("Paris")
    scheduler.advance(0.3)
    scheduler.advance(0.9)

    controller.input_changed("Parisx")
    scheduler.advance(0.15)

    assert client.queries == ["Paris"]
    assert controller.state == SearchState.DEBOUNCING
    assert controller.is_searching is False
    assert controller.status_text == "Type to search cities"
