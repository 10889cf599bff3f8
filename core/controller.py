"""
LeakProbe Identifier Controller

Folds identifiers from the passive storage scan and from forced leaks
into one monotonic accumulator, and exposes the loading / failure flags
the presentation layer renders.
"""

import logging
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence

from core.accumulator import IdentifierAccumulator
from core.leak_forcer import LeakForcer
from core.pattern_matcher import IdentifierPatternMatcher

logger = logging.getLogger(__name__)

Listener = Callable[["IdentifierController"], None]


class ViewState(str, Enum):
    """What the presentation layer should show"""
    LOADING = "loading"
    NOT_LOGGED_IN = "not_logged_in"  # Forced leak failed and nothing was found
    IDENTIFIERS_FOUND = "identifiers_found"
    NOT_TESTED = "not_tested"  # Nothing found yet; forcing is still on offer


class IdentifierController:
    """
    Orchestrates passive and forced identifier detection.

    Args:
        matcher: Pattern matcher for the passive path
        forcer_factory: Builds a LeakForcer for each forced-leak request
    """

    def __init__(
        self,
        matcher: Optional[IdentifierPatternMatcher] = None,
        forcer_factory: Optional[Callable[[], LeakForcer]] = None,
    ):
        self.matcher = matcher or IdentifierPatternMatcher()
        self.forcer_factory = forcer_factory
        self._accumulator = IdentifierAccumulator()
        self._loading = False
        self._forced_leak_failed = False
        self._forcing = False
        self._listeners: List[Listener] = []
        self.last_forcer: Optional[LeakForcer] = None

    # ---- observable state -------------------------------------------------

    @property
    def identifiers(self) -> FrozenSet[str]:
        return self._accumulator.identifiers

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def forced_leak_failed(self) -> bool:
        return self._forced_leak_failed

    @property
    def view_state(self) -> ViewState:
        if self._loading:
            return ViewState.LOADING
        if self._forced_leak_failed and not self.identifiers:
            return ViewState.NOT_LOGGED_IN
        if self.identifiers:
            return ViewState.IDENTIFIERS_FOUND
        return ViewState.NOT_TESTED

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every observable change"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- inputs -------------------------------------------------------------

    def set_loading(self, is_loading: bool) -> None:
        """Mirror an external loading flag (e.g. inventory still being gathered)"""
        self._set_loading(bool(is_loading))

    def on_inventory(self, names: Optional[Iterable[str]]) -> bool:
        """
        Passive path: scan a storage inventory snapshot.

        Returns:
            True if new identifiers were found
        """
        found = self.matcher.extract(names)
        return self._merge(found)

    def on_initial_forced_result(self, identifiers: Optional[Sequence[str]]) -> None:
        """
        Take the result of a forced probe run before the controller existed.

        None means no probe was attempted; an empty list means the probe
        ran and found nothing. A bare string is one identifier.
        """
        if identifiers is None:
            return
        if isinstance(identifiers, str):
            identifiers = [identifiers] if identifiers else []
        if identifiers:
            self._merge(identifiers)
        else:
            self._set_forced_leak_failed(True)

    async def force_leak(self) -> FrozenSet[str]:
        """
        User-initiated forced leak.

        Returns:
            The accumulated identifiers after the attempt
        """
        if self.forcer_factory is None:
            raise RuntimeError("No forcer factory configured for forced leaks")
        if self._forcing:
            logger.warning("Forced leak already in progress - request ignored")
            return self.identifiers

        self._forcing = True
        self._set_loading(True)
        self._set_forced_leak_failed(False)
        try:
            forcer = self.forcer_factory()
            self.last_forcer = forcer
            found = await forcer.force()

            if found:
                self._merge(found)
            else:
                self._set_forced_leak_failed(True)
        finally:
            self._forcing = False
            self._set_loading(False)

        return self.identifiers

    # ---- internals ----------------------------------------------------------

    def _merge(self, incoming: Optional[Iterable[str]]) -> bool:
        changed = self._accumulator.merge(incoming)
        if changed:
            logger.info(f"Identifiers now: {', '.join(sorted(self.identifiers))}")
            self._notify()
        return changed

    def _set_loading(self, value: bool) -> None:
        if self._loading != value:
            self._loading = value
            self._notify()

    def _set_forced_leak_failed(self, value: bool) -> None:
        if self._forced_leak_failed != value:
            self._forced_leak_failed = value
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.warning(f"Identifier listener failed: {type(e).__name__}: {e}")
