"""Reactive-stream adapter. Opt-in — requires reactivex.

Exposes a store's state changes as a reactivex Observable so they can be
composed with the usual operators:

    from reactivex import operators as ops
    from layerstore.rx import observe

    observe(store).pipe(ops.filter(lambda s: s is not None)).subscribe(print)

Only the store's observable() hook and its subscribe() contract are used; the
core package never imports reactivex.
"""

from __future__ import annotations

import reactivex
from reactivex.disposable import Disposable


def observe(store, *, fire_immediately: bool = False) -> reactivex.Observable:
    """Observable of store states.

    Emits every subsequent state. With fire_immediately, the state current at
    subscription time is emitted first. Dispatch errors are sent to on_error,
    which ends the stream for that observer.
    """
    source = store.observable()

    def _subscribe(observer, scheduler=None):
        if fire_immediately:
            observer.on_next(source.get_state())

        subscription = source.subscribe(
            {
                "next": lambda new_state, old_state: observer.on_next(new_state),
                "error": observer.on_error,
            }
        )
        return Disposable(subscription.unsubscribe)

    return reactivex.create(_subscribe)
