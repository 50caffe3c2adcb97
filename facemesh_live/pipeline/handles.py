"""Single-owner resource handles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from loguru import logger


if TYPE_CHECKING:
    from collections.abc import Callable


T = TypeVar("T")


class OwnedHandle(Generic[T]):
    """Hold at most one live resource and release it before replacing it.

    The owner is the only code path that may assign; readers use ``current``.
    """

    def __init__(self, release: Callable[[T], None], label: str = "resource") -> None:
        """Create an empty handle with the function that frees a resource."""
        self._release = release
        self._label = label
        self._current: T | None = None

    @property
    def current(self) -> T | None:
        """Return the held resource, or None."""
        return self._current

    def __bool__(self) -> bool:
        return self._current is not None

    def release(self) -> None:
        """Release the held resource. Safe to call when empty."""
        resource, self._current = self._current, None
        if resource is None:
            return
        logger.debug("Releasing {}", self._label)
        self._release(resource)

    def replace(self, factory: Callable[[], T]) -> T:
        """Release the current resource, then build and hold a new one.

        If ``factory`` raises, the handle stays empty and the error propagates.
        """
        self.release()
        resource = factory()
        self._current = resource
        return resource
