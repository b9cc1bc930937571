"""
Resumable sorting sessions with undo, and their persistence

A :class:`SortSession` wraps the state machine for an interactive front end: it remembers the
items being sorted and every earlier state, so decisions can be undone. A :class:`SessionStore`
saves a session into any mapping of strings to strings, such as a :mod:`shelve` file, so that it
can be resumed after the program exits. Save after every decision, *then* present the next
comparison, and no decision is ever lost or asked twice.

>>> from merge_insertion_session import SortSession, SessionStore
>>> session = SortSession.start(['A', 'B', 'C', 'D'])
>>> session.pair.ids
('A', 'B')
>>> session.decide('B')
>>> store = SessionStore({})
>>> store.save(session)
>>> store.load().pair.ids
('C', 'D')

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
import json
import logging
from collections.abc import Iterable, MutableMapping
from typing import Literal, Optional, Union
from .errors import NothingToUndoError, StateDecodeError
from .machine import apply_decision, initialize, progress, ranking
from .serialize import serialize, deserialize
from .state import AlgorithmState, ComparisonPair, Completed, Item

logger = logging.getLogger(__name__)

class SortSession:
    """The items being sorted, the current state, and the states before it.

    :param items: The items being sorted.
    :param state: The current state.
    :param history: Earlier states, oldest first.
    :param source_id: Optional id of where the items came from, e.g. a playlist.
    """

    def __init__(self, items :Iterable[Item], state :AlgorithmState, history :Iterable[AlgorithmState] = (), source_id :Optional[str] = None):
        self.items :tuple[Item, ...] = tuple(items)
        self.state :AlgorithmState = state
        self.history :list[AlgorithmState] = list(history)
        self.source_id = source_id

    @classmethod
    def start(cls, items :Iterable[Union[Item, str]], source_id :Optional[str] = None) -> 'SortSession':
        """Starts a new session, see :func:`~merge_insertion_session.initialize`."""
        items = [ i if isinstance(i, Item) else Item(i) for i in items ]
        return cls(items, initialize(items), source_id=source_id)

    @property
    def pair(self) -> Optional[ComparisonPair]:
        """The comparison waiting for a decision, ``None`` once done."""
        return self.state.pair

    @property
    def done(self) -> bool:
        return isinstance(self.state, Completed)

    @property
    def progress(self) -> float:
        return progress(self.state)

    @property
    def decisions(self) -> int:
        """How many decisions have been made (and not undone)."""
        return len(self.history)

    def decide(self, winner_id :str) -> None:
        """Applies a decision, see :func:`~merge_insertion_session.apply_decision`.
        On errors, the session is unchanged. Decisions on a completed session are ignored."""
        if self.done:
            return
        new_state = apply_decision(self.state, winner_id)
        self.history.append(self.state)
        self.state = new_state

    def choose(self, side :Literal['left', 'right']) -> None:
        """Decides for the left or right item of the current :attr:`pair`."""
        if side not in ('left', 'right'):
            raise ValueError(f"side must be 'left' or 'right', not {side!r}")
        if self.pair is None:
            return
        self.decide( self.pair.left.id if side=='left' else self.pair.right.id )

    def undo(self) -> None:
        """Goes back to the state before the last decision.

        :raises NothingToUndoError: If no decision has been made yet.
        """
        if not self.history:
            raise NothingToUndoError("no decision to undo")
        self.state = self.history.pop()

    def ranking(self) -> list[Item]:
        """The sorted items, most preferred first, see :func:`~merge_insertion_session.ranking`."""
        return ranking(self.state)

class SessionStore:
    """Saves and loads one :class:`SortSession` in a mapping, under keys starting with ``key``.

    :param backend: Where to store things, e.g. a ``dict`` or a :func:`shelve.open` shelf.
    :param key: The prefix of the keys, so that several sessions can share a backend.
    """

    #: Value of the ``key`` entry while a session is stored.
    ACTIVE = 'active'

    def __init__(self, backend :MutableMapping[str, str], key :str = 'sort_session'):
        self.backend = backend
        self.key = key

    def _keys(self) -> tuple[str, ...]:
        return tuple( self.key + suffix for suffix in ('', '_state', '_history', '_items', '_source') )

    def active(self) -> bool:
        return self.backend.get(self.key) == self.ACTIVE

    def save(self, session :SortSession) -> None:
        marker, state_key, history_key, items_key, source_key = self._keys()
        self.backend[state_key] = serialize(session.state)
        self.backend[history_key] = json.dumps([ serialize(s) for s in session.history ])
        self.backend[items_key] = json.dumps([ {**i.data, 'id': i.id} for i in session.items ])
        if session.source_id is None:
            self.backend.pop(source_key, None)
        else:
            self.backend[source_key] = session.source_id
        # the marker goes last so that an interrupted save isn't mistaken for a complete one
        self.backend[marker] = self.ACTIVE
        logger.debug("saved session %r after %d decisions", self.key, session.decisions)

    def load(self) -> Optional[SortSession]:
        """Loads the stored session.

        :return: The session, or ``None`` if none is stored.
        :raises StateDecodeError: If the stored session is incomplete or corrupt.
        """
        if not self.active():
            return None
        _, state_key, history_key, items_key, source_key = self._keys()
        try:
            state = deserialize(self.backend[state_key])
            history = [ deserialize(s) for s in json.loads(self.backend[history_key]) ]
            items = [ Item(i['id'], { k: v for k, v in i.items() if k!='id' }) for i in json.loads(self.backend[items_key]) ]
        except StateDecodeError:
            logger.warning("stored session %r is corrupt", self.key)
            raise
        except (ValueError, KeyError, TypeError, AttributeError) as ex:
            logger.warning("stored session %r is corrupt", self.key)
            raise StateDecodeError(f"stored session {self.key!r} is corrupt: {ex!r}") from ex
        logger.info("resuming session %r after %d decisions", self.key, len(history))
        return SortSession(items, state, history, self.backend.get(source_key))

    def clear(self) -> None:
        for k in self._keys():
            self.backend.pop(k, None)
