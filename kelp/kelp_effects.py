"""
The effect bridge: the one boundary through which KELP performs blocking
external actions.

Primitives never touch files or the network directly; they call `perform`
(or enter `effect`) so that every low-level failure leaves as an IOFailure
and nothing else escapes into the evaluator.
"""
import os
import sys
from contextlib import contextmanager
from typing import Any, Callable

import httpx

from kelp.kelp_errors import Fault, IOFailure

ACTIONS = ("read", "write", "append", "probe", "remove", "fetch")


def _dbg(*parts):
    if os.environ.get("KELP_DEBUG"):
        print("[DBG]", *parts, file=sys.stderr)


@contextmanager
def effect(action: str, resource: str):
    """Runs the enclosed block as `action` on `resource`, classifying failures."""
    assert action in ACTIONS, action
    _dbg("effect", action, resource)
    try:
        yield
    except Fault:
        raise
    except FileNotFoundError as e:
        raise IOFailure(f"file does not exist: {resource}", resource, reason="missing") from e
    except IsADirectoryError as e:
        raise IOFailure(f"{resource} is a directory", resource, reason="directory") from e
    except PermissionError as e:
        raise IOFailure(f"permission denied: {resource}", resource, reason="permission") from e
    except OSError as e:
        detail = e.strerror or str(e)
        raise IOFailure(f"cannot {action} {resource}: {detail}", resource, reason="os") from e
    except UnicodeError as e:
        raise IOFailure(f"cannot {action} {resource}: {e}", resource, reason="encoding") from e
    except httpx.TimeoutException as e:
        raise IOFailure(f"timed out fetching {resource}", resource, reason="timeout") from e
    except httpx.ConnectError as e:
        raise IOFailure(f"cannot connect to {resource}: {e}", resource, reason="connect") from e
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        raise IOFailure(f"invalid url {resource}: {e}", resource, reason="invalid-url") from e
    except httpx.HTTPError as e:
        raise IOFailure(f"fetch failed for {resource}: {e}", resource, reason="transport") from e
    except ValueError as e:
        # e.g. an embedded NUL in a path
        raise IOFailure(f"cannot {action} {resource}: {e}", resource, reason="invalid") from e


def perform(action: str, resource: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Calls `fn(*args, **kwargs)` inside `effect(action, resource)`."""
    with effect(action, resource):
        return fn(*args, **kwargs)
