"""
Exceptions raised by merge_insertion_session

Copyright © 2025 Hauke Dämpfling (haukex@zero-g.net)

Permission to use, copy, modify, and/or distribute this software for any
purpose with or without fee is hereby granted, provided that the above
copyright notice and this permission notice appear in all copies.

THE SOFTWARE IS PROVIDED “AS IS” AND THE AUTHOR DISCLAIMS ALL WARRANTIES
WITH REGARD TO THIS SOFTWARE INCLUDING ALL IMPLIED WARRANTIES OF
MERCHANTABILITY AND FITNESS. IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR
ANY SPECIAL, DIRECT, INDIRECT, OR CONSEQUENTIAL DAMAGES OR ANY DAMAGES
WHATSOEVER RESULTING FROM LOSS OF USE, DATA OR PROFITS, WHETHER IN AN
ACTION OF CONTRACT, NEGLIGENCE OR OTHER TORTIOUS ACTION, ARISING OUT OF
OR IN CONNECTION WITH THE USE OR PERFORMANCE OF THIS SOFTWARE.
"""

class MergeInsertionError(Exception):
    """Base class of all errors raised by this package."""

class InvalidStateError(MergeInsertionError):
    """The state is structurally inconsistent for the requested transition,
    e.g. there is no open comparison or no active binary search.
    The state that was passed in is left unchanged."""

class UnknownDecisionError(MergeInsertionError):
    """The winner identifier names neither item of the open comparison."""

    def __init__(self, winner_id :str, ids :tuple[str, str]):
        super().__init__(f"{winner_id!r} is neither {ids[0]!r} nor {ids[1]!r}")
        self.winner_id = winner_id
        self.ids = ids

class DuplicateItemError(MergeInsertionError, ValueError):
    """The input collection contains the same identifier more than once."""

class StateDecodeError(MergeInsertionError, ValueError):
    """Persisted state text could not be turned back into a state."""

class NothingToUndoError(MergeInsertionError):
    """:meth:`SortSession.undo` was called without any earlier state."""
