"""Autocomplete controller for the city search box.

UI-agnostic: a front end forwards input, key, focus and click events and
reads back the suggestion state. All delays go through a ``Scheduler`` so
tests can drive the debounce and retry timers with ``FakeScheduler``.
"""
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Union

from scheduler import Scheduler, ThreadingScheduler, TimerHandle
from weather_data import CitySuggestion
from weather_provider import CitySearchProviderBase, ProviderError, RateLimited

DEBOUNCE_SECONDS = 0.3
RETRY_DELAY_SECONDS = 1.0
MAX_RETRIES = 3
BLUR_GRACE_SECONDS = 0.2


class SearchState(Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SEARCHING = "searching"
    SETTLED = "settled"
    RATE_LIMITED_RETRYING = "rate_limited_retrying"


class AutocompleteController:
    """
    Debounced, rate-limit aware city autocomplete.

    Each fetch is tagged with the query it was issued for. Results (and
    rate-limit retries) are applied only while that query still matches the
    trimmed input text, so a slow response for "Pa" can never overwrite the
    suggestions for "Paris".
    """

    def __init__(
        self,
        client: CitySearchProviderBase,
        on_search: Callable[[str], None],
        scheduler: Optional[Scheduler] = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        retry_delay_seconds: float = RETRY_DELAY_SECONDS,
        max_retries: int = MAX_RETRIES,
        blur_grace_seconds: float = BLUR_GRACE_SECONDS
    ):
        """
        Initialize controller.

        Args:
            client: City search client (``search(query)`` raising RateLimited/UpstreamError)
            on_search: Called with the city name when a search is submitted
            scheduler: Timer source (defaults to real threading timers)
            debounce_seconds: Quiet period before a keystroke triggers a search
            retry_delay_seconds: Fixed delay before retrying a rate-limited search
            max_retries: Retries allowed per query after the first attempt
            blur_grace_seconds: Delay before losing focus hides the panel
        """
        self.client = client
        self.on_search = on_search
        self.scheduler = scheduler or ThreadingScheduler()
        self.debounce_seconds = debounce_seconds
        self.retry_delay_seconds = retry_delay_seconds
        self.max_retries = max_retries
        self.blur_grace_seconds = blur_grace_seconds

        self.text = ""
        self.suggestions: List[CitySuggestion] = []
        self.has_results = False
        self.show_suggestions = False
        self.is_focused = False
        self.highlighted_index = -1
        self.is_searching = False
        self.state = SearchState.IDLE
        self.retry_count = 0

        self._retry_query: Optional[str] = None
        self._debounce_handle: Optional[TimerHandle] = None
        self._retry_handle: Optional[TimerHandle] = None
        self._blur_handle: Optional[TimerHandle] = None
        self._lock = threading.RLock()

    @property
    def panel_visible(self) -> bool:
        return self.is_focused and self.show_suggestions

    @property
    def status_text(self) -> str:
        """Placeholder line shown in the panel when there is no list to show."""
        if self.is_searching:
            if self.retry_count > 0:
                return f"Retrying... (Attempt {self.retry_count}/{self.max_retries})"
            return "Searching cities..."
        if self.suggestions:
            return ""
        return "No cities found" if self.state == SearchState.SETTLED else "Type to search cities"

    # Input and debounce

    def input_changed(self, value: str) -> None:
        """Handle a keystroke: store the text and restart the debounce timer."""
        with self._lock:
            self.text = value
            self.highlighted_index = -1
            self._cancel_debounce()

            if not value.strip():
                self._cancel_retry()
                self.suggestions = []
                self.show_suggestions = False
                self.has_results = False
                self.is_searching = False
                self.state = SearchState.IDLE
                return

            self.state = SearchState.DEBOUNCING
            self._debounce_handle = self.scheduler.call_later(
                self.debounce_seconds, lambda: self._debounce_elapsed(value)
            )

    def _debounce_elapsed(self, value: str) -> None:
        with self._lock:
            if value != self.text:
                return
            self._debounce_handle = None
            # Every debounced search starts a new retry session
            self._cancel_retry()
            query = value.strip()
            self.retry_count = 0
            self._retry_query = query
        self._fetch(query)

    # Fetching and retrying

    def _is_current(self, query: str) -> bool:
        return query == self.text.strip()

    def _settle_stale(self, query: str) -> None:
        """Clear the searching flags left by a superseded fetch, unless a newer one owns them."""
        if self._retry_query != query:
            return
        self._retry_query = None
        self.is_searching = False
        if self.state in (SearchState.SEARCHING, SearchState.RATE_LIMITED_RETRYING):
            self.state = SearchState.IDLE

    def _fetch(self, query: str) -> None:
        with self._lock:
            if not self._is_current(query):
                logging.debug(f"Skipping search for superseded query '{query}'")
                self._settle_stale(query)
                return
            self.state = SearchState.SEARCHING
            self.is_searching = True
            attempt = self.retry_count

        logging.debug(f"Searching cities for '{query}' (retry {attempt}/{self.max_retries})")
        try:
            suggestions = self.client.search(query)
        except RateLimited as err:
            logging.warning(f"City search for '{query}' rate limited: {err}")
            self._handle_rate_limited(query)
        except ProviderError as err:
            logging.error(f"Error fetching cities for '{query}': {err}")
            self._handle_failure(query)
        except Exception as exc:
            logging.exception(f"Unexpected error fetching cities for '{query}': {exc}")
            self._handle_failure(query)
        else:
            self._handle_results(query, suggestions)

    def _handle_results(self, query: str, suggestions: List[CitySuggestion]) -> None:
        with self._lock:
            if not self._is_current(query):
                logging.debug(f"Discarding stale results for '{query}'")
                self._settle_stale(query)
                return
            self.suggestions = list(suggestions)
            self.has_results = len(self.suggestions) > 0
            self.show_suggestions = True
            self.retry_count = 0
            self.is_searching = False
            self.state = SearchState.SETTLED

    def _handle_failure(self, query: str) -> None:
        with self._lock:
            if not self._is_current(query):
                self._settle_stale(query)
                return
            self.suggestions = []
            self.is_searching = False
            self.state = SearchState.SETTLED

    def _handle_rate_limited(self, query: str) -> None:
        with self._lock:
            if not self._is_current(query):
                self._settle_stale(query)
                return
            self.suggestions = []
            if self.retry_count >= self.max_retries:
                logging.warning(f"Giving up on '{query}' after {self.retry_count} retries")
                self.is_searching = False
                self.state = SearchState.SETTLED
                return

            self.retry_count += 1
            self.state = SearchState.RATE_LIMITED_RETRYING
            logging.info(f"Retrying '{query}' in {self.retry_delay_seconds}s "
                         f"(attempt {self.retry_count}/{self.max_retries})")
            self._retry_handle = self.scheduler.call_later(
                self.retry_delay_seconds, lambda: self._retry(query)
            )

    def _retry(self, query: str) -> None:
        with self._lock:
            self._retry_handle = None
            if not self._is_current(query):
                logging.debug(f"Dropping retry for superseded query '{query}'")
                self._settle_stale(query)
                return
        self._fetch(query)

    # Keyboard and mouse

    def key_down(self, key: str) -> bool:
        """
        Handle a navigation key.

        Returns:
            bool: True if the key was consumed
        """
        with self._lock:
            if key == "Enter":
                if self.show_suggestions and 0 <= self.highlighted_index < len(self.suggestions):
                    suggestion = self.suggestions[self.highlighted_index]
                else:
                    suggestion = None
            elif not self.show_suggestions:
                return False
            elif key == "ArrowDown":
                self.highlighted_index = min(self.highlighted_index + 1, len(self.suggestions) - 1)
                return True
            elif key == "ArrowUp":
                self.highlighted_index = self.highlighted_index - 1 if self.highlighted_index > 0 else -1
                return True
            elif key == "Escape":
                self.show_suggestions = False
                self.highlighted_index = -1
                return True
            else:
                return False

        if suggestion is not None:
            self.select(suggestion)
            return True
        return self.submit()

    def highlight(self, index: int) -> None:
        """Mouse hover over the suggestion at ``index``."""
        with self._lock:
            if -1 <= index < len(self.suggestions):
                self.highlighted_index = index

    def select(self, suggestion: Union[CitySuggestion, str]) -> None:
        """Commit a suggestion (click, or Enter on the highlighted entry)."""
        name = suggestion.name if isinstance(suggestion, CitySuggestion) else suggestion
        with self._lock:
            self._cancel_debounce()
            self._cancel_retry()
            self._retry_query = None
            self.text = name
            self.show_suggestions = False
            self.highlighted_index = -1
            self.is_searching = False
            self.state = SearchState.IDLE
        logging.info(f"Suggestion selected: {name}")
        self.on_search(name)

    def submit(self) -> bool:
        """
        Submit the typed text without picking a suggestion.

        Returns:
            bool: True if a search was submitted (text was not blank)
        """
        with self._lock:
            query = self.text.strip()
            if not query:
                return False
            self.show_suggestions = False
            self.highlighted_index = -1
        logging.info(f"Search submitted: {query}")
        self.on_search(query)
        return True

    # Focus

    def focus(self) -> None:
        with self._lock:
            if self._blur_handle is not None:
                self._blur_handle.cancel()
                self._blur_handle = None
            self.is_focused = True

    def blur(self) -> None:
        """Hide the panel after a grace delay so a click on a suggestion still lands."""
        with self._lock:
            if self._blur_handle is not None:
                self._blur_handle.cancel()
            self._blur_handle = self.scheduler.call_later(self.blur_grace_seconds, self._blur_elapsed)

    def _blur_elapsed(self) -> None:
        with self._lock:
            self._blur_handle = None
            self.is_focused = False

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
