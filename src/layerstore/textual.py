"""Textual integration for layerstore. Opt-in — requires textual.

Binds store subscriptions to a Textual app. Dispatches made from worker
threads are marshaled back with app.call_from_thread, and NoMatches raised by
widget queries inside a bound callback is swallowed.

While the widget tree is being replaced, wrap the work in pause(app). State
callbacks that fire during the pause are held and replayed once, with the
latest state, when the pause ends. Effects callbacks are dropped.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# id(app) -> {bound callback: latest args}, present only inside pause(app)
_held: dict[int, dict] = {}


@contextmanager
def pause(app):
    """Hold bound state callbacks until the block exits cleanly.

    Nested pauses for the same app replay only when the outermost one ends.
    """
    key = id(app)
    if key in _held:
        yield
        return

    held = _held[key] = {}
    try:
        yield
    finally:
        del _held[key]

    if app.is_running:
        for deliver, args in held.items():
            deliver(*args)


def is_safe(app) -> bool:
    """Can bound callbacks touch the widget tree right now?"""
    return app.is_running and id(app) not in _held


def _bridge(app, fn, *, hold):
    main = threading.get_ident()

    def _call(*args):
        try:
            fn(*args)
        except NoMatches:
            pass

    def _deliver(*args):
        if threading.get_ident() != main:
            app.call_from_thread(_call, *args)
        else:
            _call(*args)

    def _guarded(*args):
        held = _held.get(id(app))
        if held is not None:
            if hold:
                held[_deliver] = args
            return
        if app.is_running:
            _deliver(*args)

    return _guarded


def subscribe(app, store, fn, *, fire_immediately=False):
    """Call fn(state) on every state change, safely for Textual widgets.

    Returns the store Subscription (call .unsubscribe() to stop).
    """
    guarded = _bridge(app, fn, hold=True)
    if fire_immediately:
        guarded(store.get_state())
    return store.subscribe(lambda new_state, old_state: guarded(new_state))


def subscribe_effects(app, store, fn):
    """Call fn(event) with each dispatch's EffectsEvent, safely for Textual widgets."""
    return store.subscribe({"effects": _bridge(app, fn, hold=False)})
