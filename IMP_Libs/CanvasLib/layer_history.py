"""
Bounded undo/redo history for a single layer.

The undo stack holds at most UNDO_LIMIT snapshots; the newest one is the
layer's current buffer. Writing a new state clears the redo stack and, when
the undo stack is full, evicts the oldest snapshot first.

Classes:
    LayerHistory: Undo/redo state machine over PixelBuffer snapshots
    HistoryError: Raised on an impossible history transition
"""

from collections import deque
from typing import Deque
import logging

from IMP_Libs.CanvasLib.pixel_buffer import PixelBuffer
from IMP_Libs.constants import UNDO_LIMIT

logger = logging.getLogger(__name__)


class HistoryError(RuntimeError):
    """Raised when undo, redo or discard has nothing to act on."""


class LayerHistory:
    """
    Undo/redo stacks for one layer.

    The undo deque is ordered oldest-to-newest, so ``self._undo[-1]`` is the
    current buffer and ``maxlen`` takes care of FIFO eviction.

    Example:
        >>> history = LayerHistory(original)
        >>> history.update(filtered)
        >>> history.undo()
        0
        >>> history.current == original
        True
    """

    def __init__(self, initial: PixelBuffer, capacity: int = UNDO_LIMIT):
        if not isinstance(initial, PixelBuffer):
            raise TypeError(f"Expected PixelBuffer, got {type(initial)}")
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")

        self._capacity = int(capacity)
        self._undo: Deque[PixelBuffer] = deque([initial], maxlen=self._capacity)
        self._redo: Deque[PixelBuffer] = deque()

    @property
    def current(self) -> PixelBuffer:
        return self._undo[-1]

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def depth(self) -> int:
        """Number of snapshots on the undo stack, including the current one."""
        return len(self._undo)

    @property
    def undo_levels(self) -> int:
        """How many times undo() can still be called."""
        return len(self._undo) - 1

    @property
    def redo_levels(self) -> int:
        """How many times redo() can still be called."""
        return len(self._redo)

    def update(self, buffer: PixelBuffer) -> None:
        """
        Push a new current state.

        Args:
            buffer: The new current buffer

        Raises:
            TypeError: If buffer is not a PixelBuffer
        """
        if not isinstance(buffer, PixelBuffer):
            raise TypeError(f"Expected PixelBuffer, got {type(buffer)}")

        self._redo.clear()
        if len(self._undo) == self._capacity:
            logger.debug("History full, evicting oldest state")
        self._undo.append(buffer)

    def undo(self) -> int:
        """
        Step back one state.

        Returns:
            The number of undo levels left

        Raises:
            HistoryError: If only the initial state remains
        """
        if len(self._undo) < 2:
            raise HistoryError("Nothing to undo")

        self._redo.append(self._undo.pop())
        return self.undo_levels

    def redo(self) -> int:
        """
        Re-apply the most recently undone state.

        Returns:
            The number of redo levels left

        Raises:
            HistoryError: If there is nothing to redo
        """
        if not self._redo:
            raise HistoryError("Nothing to redo")

        self._undo.append(self._redo.pop())
        return self.redo_levels

    def discard(self, index: int) -> PixelBuffer:
        """
        Remove one snapshot from the undo stack without touching redo.

        Args:
            index: Position counted from the newest state (0 is current)

        Returns:
            The removed buffer

        Raises:
            IndexError: If index is outside the undo stack
            HistoryError: If removing it would leave the history empty
        """
        if not 0 <= index < len(self._undo):
            raise IndexError(f"No history entry at {index} (depth {len(self._undo)})")
        if len(self._undo) == 1:
            raise HistoryError("Cannot discard the only remaining state")

        position = len(self._undo) - 1 - index
        removed = self._undo[position]
        del self._undo[position]
        return removed
