import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from community.core.exceptions import WriteError

logger = logging.getLogger("app")

StateT = TypeVar("StateT")
ResultT = TypeVar("ResultT")
NextT = TypeVar("NextT")


def apply_after_write(
    state: StateT,
    write: Callable[[], ResultT],
    transition: Callable[[StateT, ResultT], NextT],
    failure_message: str = "Could not save changes",
) -> NextT:
    """
    Run ``write`` and, only once it has returned, derive the next state.

    ``state`` is never mutated. If the write fails the caller still holds the
    exact state it passed in, and a WriteError carrying ``failure_message``
    is raised.
    """
    try:
        result = write()
    except WriteError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Write failed, keeping previous state: {e}")
        raise WriteError(failure_message) from e
    return transition(state, result)
