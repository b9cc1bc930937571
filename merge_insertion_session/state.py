"""
State of a resumable merge-insertion sort

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
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union, ClassVar

class Phase(str, Enum):
    """The phase tag of an :data:`AlgorithmState`. The values are the ones used on the wire."""
    PAIRING = 'PAIRING'
    INSERTION = 'INSERTION'
    COMPLETED = 'COMPLETED'

@dataclass(frozen=True)
class Item:
    """Something to be sorted. Only :attr:`id` takes part in sorting and in equality,
    :attr:`data` is display metadata that is carried along untouched (it must be JSON
    serializable if the state is to be serialized)."""
    id :str
    data :Mapping[str, Any] = field(default_factory=dict, compare=False)

@dataclass(frozen=True)
class ComparisonPair:
    """The open question: which of the two items is preferred?"""
    left :Item
    right :Item

    @property
    def ids(self) -> tuple[str, str]:
        return self.left.id, self.right.id

@dataclass(frozen=True)
class RoundRecord:
    """Summary of one completed pairing round, kept on the recursion stack until its
    losers (and odd leftover) are inserted into the main chain."""
    round_id :int
    losers :tuple[Item, ...]
    odd :Optional[Item]
    #: loser id -> winner id
    pairings :Mapping[str, str]
    winners :tuple[Item, ...]

    def pending(self) -> tuple[Item, ...]:
        """The items this round contributes to the insertion phase, in their original order."""
        return self.losers + ( (self.odd,) if self.odd is not None else () )

@dataclass(frozen=True)
class BinarySearchCursor:
    """Where ``target`` is being placed in the main chain: ``[min, max)`` is the
    remaining candidate range of insertion indices."""
    target :Item
    min :int
    max :int

    @property
    def mid(self) -> int:
        return (self.min + self.max) // 2

@dataclass(frozen=True)
class Pairing:
    """A pairing round is in progress and :attr:`pair` is waiting for a decision."""
    phase :ClassVar[Phase] = Phase.PAIRING
    pair :ComparisonPair
    #: Items of this round that have not been paired up yet.
    pool :tuple[Item, ...] = ()
    winners :tuple[Item, ...] = ()
    losers :tuple[Item, ...] = ()
    pairings :Mapping[str, str] = field(default_factory=dict)
    odd :Optional[Item] = None
    stack :tuple[RoundRecord, ...] = ()

@dataclass(frozen=True)
class Insertion:
    """An item is being placed into the main chain via binary search."""
    phase :ClassVar[Phase] = Phase.INSERTION
    main_chain :tuple[Item, ...]
    cursor :BinarySearchCursor
    #: The rest of the current insertion group, in insertion order.
    group :tuple[Item, ...] = ()
    stack :tuple[RoundRecord, ...] = ()

    @property
    def pair(self) -> ComparisonPair:
        return ComparisonPair(self.cursor.target, self.main_chain[self.cursor.mid])

@dataclass(frozen=True)
class Completed:
    """Terminal state, the main chain contains every item."""
    phase :ClassVar[Phase] = Phase.COMPLETED
    main_chain :tuple[Item, ...] = ()

    @property
    def pair(self) -> None:
        return None

#: The whole state of a sort; the only value that needs to survive between decisions.
AlgorithmState = Union[Pairing, Insertion, Completed]
