"""Auto-save helpers for the preferences editor.

This module lives in the *model* layer so that persistence of the timezone
list is decoupled from any particular view implementation.  It exposes a
decorator that can be applied to editor operations so that every successful
edit is written back to the settings store immediately.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable
import logging


def autosave(handler: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that saves the editor after a successful edit.

    The wrapped function must be a method of an object exposing ``save()``.
    After the handler returns, ``save()`` is invoked unless:

    - the handler returned ``False`` (the edit was rejected), or
    - the editor is currently loading (``editor._loading``).

    Save failures propagate so that the view can report them.
    """

    @wraps(handler)
    def wrapper(editor: Any, *args: Any, **kwargs: Any) -> Any:
        result = handler(editor, *args, **kwargs)
        if result is False or getattr(editor, "_loading", False):
            return result
        logging.debug("autosave after %s", handler.__name__)
        editor.save()
        return result

    return wrapper


__all__ = ["autosave"]
