"""
The merge-insertion state machine

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
import logging
from collections.abc import Generator, Iterable, Callable, Awaitable
from dataclasses import replace
from itertools import islice
from typing import Literal, Optional, Union
from .errors import InvalidStateError, UnknownDecisionError, DuplicateItemError
from .state import (AlgorithmState, BinarySearchCursor, ComparisonPair, Completed, Insertion,
    Item, Pairing, RoundRecord)

logger = logging.getLogger(__name__)

# Helper that generates the Jacobsthal numbers, starting with J(0).
def _jacobsthal() -> Generator[int, None, None]:
    # <https://oeis.org/A001045>: a(n) = a(n-1) + 2*a(n-2), with a(0) = 0, a(1) = 1.
    prev :int = 0
    cur :int = 1
    while True:
        yield prev
        prev, cur = cur, cur + 2*prev

def insertion_order(n :int) -> list[int]:
    """Returns the order in which a batch of ``n`` pending items is inserted into the main chain.

    The first item comes first, then the items are taken in blocks bounded by consecutive
    Jacobsthal numbers (3, 5, 11, 21, ...), each block from its highest index down to its
    lowest, e.g. ``[0, 2, 1, 4, 3, 10, 9, 8, 7, 6, 5, ...]``.

    :param n: The number of pending items.
    :return: A permutation of ``range(n)``.
    """
    if n<0:
        raise ValueError("must specify zero or more items")
    if not n:
        return []
    rv :list[int] = [0]
    prev_j :int = 1
    for cur_j in islice(_jacobsthal(), 3, None):
        if len(rv) >= n:
            break
        # the blocks are contiguous, so no index is emitted twice; the last one is clamped to n
        rv.extend( range( min(cur_j, n) - 1, prev_j - 1, -1 ) )
        prev_j = cur_j
    return rv

def _start_round(pool :list[Item], stack :tuple[RoundRecord, ...]) -> Pairing:
    # An odd item out sits this round out and is inserted along with this round's losers.
    # Note it's the *last* item of the pool, which for later rounds is simply the last winner found.
    odd = pool.pop() if len(pool) % 2 else None
    return Pairing( pair=ComparisonPair(pool[0], pool[1]), pool=tuple(pool[2:]), odd=odd, stack=stack )

def initialize(items :Iterable[Union[Item, str]]) -> AlgorithmState:
    """Builds the starting state of a sort.

    :param items: The items to sort, in any order. Plain strings are taken as :class:`Item` ids.
        **Duplicate ids are not allowed.**
    :return: A :class:`Pairing` state, or a :class:`Completed` one if there is nothing to compare.
    """
    pool = [ i if isinstance(i, Item) else Item(i) for i in items ]
    if len(pool) != len({ i.id for i in pool }):
        raise DuplicateItemError('items may not contain duplicate ids')
    if len(pool)<2:
        return Completed(tuple(pool))
    logger.debug("starting sort of %d items", len(pool))
    return _start_round(pool, ())

# Determines the winner and loser of the open comparison.
def _winner_loser(pair :Optional[ComparisonPair], winner_id :str) -> tuple[Item, Item]:
    if pair is None:
        raise InvalidStateError("there is no open comparison")
    if winner_id == pair.left.id:
        return pair.left, pair.right
    if winner_id == pair.right.id:
        return pair.right, pair.left
    raise UnknownDecisionError(winner_id, pair.ids)

def _pairing_decision(state :Pairing, winner_id :str) -> AlgorithmState:
    if len(state.pool) % 2:
        raise InvalidStateError(f"pairing pool has an odd number of items ({len(state.pool)})")
    winner, loser = _winner_loser(state.pair, winner_id)
    winners = state.winners + (winner,)
    losers = state.losers + (loser,)
    pairings = { **state.pairings, loser.id: winner.id }
    if state.pool:
        return replace(state, pair=ComparisonPair(state.pool[0], state.pool[1]), pool=state.pool[2:],
            winners=winners, losers=losers, pairings=pairings)
    # Round is complete. Instead of recursing into the winners, remember what we need for the
    # insertion phase on an explicit stack, which (unlike the call stack) can be serialized.
    record = RoundRecord( round_id=len(state.stack), losers=losers, odd=state.odd, pairings=pairings, winners=winners )
    stack = state.stack + (record,)
    logger.debug("round %d complete: %d winners, %d losers, odd item %r",
        record.round_id, len(winners), len(losers), state.odd.id if state.odd else None)
    if len(winners)==1:
        return _next_insertion(winners, (), stack)
    return _start_round(list(winners), stack)

# Sets up the binary search for the next item to insert, popping the recursion stack as needed.
def _next_insertion(main_chain :tuple[Item, ...], group :tuple[Item, ...], stack :tuple[RoundRecord, ...]) -> Union[Insertion, Completed]:
    # The stack is popped last-in-first-out, so the losers of the innermost (smallest) round are
    # inserted first, while the main chain consists of exactly the winners of that round.
    while not group:
        if not stack:
            logger.debug("sort complete, %d items", len(main_chain))
            return Completed(main_chain)
        record, stack = stack[-1], stack[:-1]
        pending = record.pending()
        group = tuple( pending[i] for i in insertion_order(len(pending)) )
        logger.debug("inserting %d items of round %d", len(group), record.round_id)
    # Note the search is over the whole main chain, not only up to the item's partner from
    # the pairing phase as in the textbook algorithm. This is still a correct sort, just not
    # always with the minimum number of comparisons.
    target, group = group[0], group[1:]
    return Insertion( main_chain=main_chain, cursor=BinarySearchCursor(target, 0, len(main_chain)), group=group, stack=stack )

def _insertion_decision(state :Insertion, winner_id :str) -> AlgorithmState:
    cur = state.cursor
    if cur is None or not 0 <= cur.min < cur.max <= len(state.main_chain):
        raise InvalidStateError("there is no active binary search")
    winner, _ = _winner_loser(state.pair, winner_id)
    if winner == cur.target:  # target belongs after mid
        lo, hi = cur.mid + 1, cur.max
    else:  # target belongs at or before mid
        lo, hi = cur.min, cur.mid
    if lo < hi:
        return replace(state, cursor=replace(cur, min=lo, max=hi))
    main_chain = state.main_chain[:lo] + (cur.target,) + state.main_chain[lo:]
    logger.debug("inserted %r at index %d of %d", cur.target.id, lo, len(main_chain))
    return _next_insertion(main_chain, state.group, state.stack)

def apply_decision(state :AlgorithmState, winner_id :str) -> AlgorithmState:
    """Applies one decision to the open comparison of a state.

    :param state: The current state, which is not modified.
    :param winner_id: The id of the preferred item; must be one of the two items of ``state.pair``.
    :return: The next state. A :class:`Completed` state is returned as-is.
    :raises UnknownDecisionError: If ``winner_id`` is neither item of the open comparison.
    :raises InvalidStateError: If the state is inconsistent.
    """
    if isinstance(state, Pairing):
        return _pairing_decision(state, winner_id)
    if isinstance(state, Insertion):
        return _insertion_decision(state, winner_id)
    return state

def item_count(state :AlgorithmState) -> int:
    """Returns the number of items being sorted, as far as they can be found in the state."""
    if isinstance(state, Completed):
        return len(state.main_chain)
    # every round's winners are the input of the next round, so only the losers and odd items count
    stacked = sum( len(r.pending()) for r in state.stack )
    if isinstance(state, Insertion):
        return stacked + len(state.main_chain) + 1 + len(state.group)
    return stacked + 2 + len(state.pool) + len(state.winners) + len(state.losers) + (state.odd is not None)

def progress(state :AlgorithmState) -> float:
    """Returns the fraction of the items that have been placed in the main chain, between 0 and 1."""
    if isinstance(state, Completed):
        return 1.0
    if isinstance(state, Pairing):
        return 0.0
    return len(state.main_chain) / item_count(state)

def ranking(state :AlgorithmState) -> list[Item]:
    """Returns the sorted items, most preferred first.

    The main chain holds the items in ascending order of preference (a target that wins a
    comparison moves to higher indices), so this is the main chain reversed.

    :raises InvalidStateError: If the sort hasn't completed yet.
    """
    if not isinstance(state, Completed):
        raise InvalidStateError(f"sort is not complete (phase {state.phase.value})")
    return list(reversed(state.main_chain))

#: A user-supplied async function to compare two items.
#: The single argument is a tuple of the two items to be compared.
#: Must return 0 if the first item is preferred, or 1 if the second item is preferred.
Comparator = Callable[[tuple[Item, Item]], Awaitable[Literal[0, 1]]]

async def drive(state :AlgorithmState, comparator :Comparator) -> Completed:
    """Feeds decisions from an async comparator into the state machine until the sort is complete.

    :param state: The state to start from, e.g. from :func:`initialize` or a deserialized one.
    :param comparator: Async comparison function as described in :data:`Comparator`.
    :return: The completed state.
    """
    while not isinstance(state, Completed):
        pair = state.pair
        choice = await comparator((pair.left, pair.right))
        if choice not in (0, 1):
            raise ValueError(f"comparator must return 0 or 1, not {choice!r}")
        state = apply_decision(state, pair.ids[choice])
    return state

async def sort_items(items :Iterable[Union[Item, str]], comparator :Comparator) -> list[Item]:
    """Sorts items with an async comparator, see :func:`initialize` and :func:`drive`.

    :return: The items, most preferred first.
    """
    return ranking(await drive(initialize(items), comparator))
