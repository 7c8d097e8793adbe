"""Error types and sticky-error support for the package builders."""

import functools
from collections.abc import Callable
from typing import Any, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


class DebpackError(Exception):
    """Base class for all package build failures."""


class ValidationError(DebpackError):
    """A mandatory descriptor field is missing or malformed."""


class ReadError(DebpackError):
    """A manifest or script source could not be read."""


class EmptyContentError(ReadError):
    """A manifest or script source is zero-length."""


class ArchiveClosedError(DebpackError):
    """A member was added to an archive that is already finalized."""


class HookError(DebpackError):
    """A pre- or post-build hook command failed."""


class WriteError(DebpackError):
    """The finished package could not be persisted."""


def sticky(method: F) -> F:
    """Record the first DebpackError raised by ``method`` on the instance.

    Once an error is stored in ``self.error`` every decorated call on the
    same instance re-raises it without doing any further work.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self.error is not None:
            raise self.error
        try:
            return method(self, *args, **kwargs)
        except DebpackError as e:
            if self.error is None:
                self.error = e
            raise

    return wrapper  # type: ignore[return-value]
