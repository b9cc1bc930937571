"""
Resumable Merge-Insertion Sort by Pairwise Decisions
====================================================

The Ford-Johnson algorithm[1], also known as the merge-insertion sort[2,3], needs very few
comparisons, which makes it well suited for sorting by taste: every comparison is a question
to a human. This package runs the algorithm as a state machine that stops at every comparison
and only continues when it is given a decision, so that the person answering can take as long
as they like, and even close the program and come back later, because the whole state can be
serialized to JSON between any two decisions.

>>> from merge_insertion_session import initialize, apply_decision, ranking, Completed
>>> state = initialize(['D', 'A', 'B', 'E', 'C'])
>>> while not isinstance(state, Completed):
...     left, right = state.pair.ids
...     # a real application would ask a person here; we just prefer the earlier letter:
...     state = apply_decision(state, min(left, right))
>>> [ i.id for i in ranking(state) ]
['A', 'B', 'C', 'D', 'E']

The recursion of the algorithm (sort the winners of all pairs, then insert the losers) is kept
on an explicit stack of :class:`RoundRecord` objects in the state instead of the call stack.
Each round's losers, plus its odd item out, are inserted in an order given by the Jacobsthal
numbers (:func:`insertion_order`), each by a binary search over the whole main chain. The
latter is a simplification of the textbook algorithm, which bounds each search by the position
of the item's winning partner, so the number of comparisons is not always the minimum.

**References**

1. Ford, L. R., & Johnson, S. M. (1959). A Tournament Problem.
   The American Mathematical Monthly, 66(5), 387-389. https://doi.org/10.1080/00029890.1959.11989306
2. Knuth, D. E. (1998). The Art of Computer Programming: Volume 3: Sorting and Searching (2nd ed.).
   Addison-Wesley. https://cs.stanford.edu/~knuth/taocp.html#vol3
3. https://en.wikipedia.org/wiki/Merge-insertion_sort

API
---

.. autofunction:: merge_insertion_session.initialize

.. autofunction:: merge_insertion_session.apply_decision

.. autofunction:: merge_insertion_session.ranking

.. autofunction:: merge_insertion_session.progress

.. autofunction:: merge_insertion_session.insertion_order

.. autofunction:: merge_insertion_session.drive

.. autofunction:: merge_insertion_session.sort_items

.. autofunction:: merge_insertion_session.serialize

.. autofunction:: merge_insertion_session.deserialize

.. autoclass:: merge_insertion_session.SortSession
    :members:

.. autoclass:: merge_insertion_session.SessionStore
    :members:

Author, Copyright and License
-----------------------------

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
from .errors import (MergeInsertionError, InvalidStateError, UnknownDecisionError, DuplicateItemError,
    StateDecodeError, NothingToUndoError)
from .state import (Phase, Item, ComparisonPair, RoundRecord, BinarySearchCursor, Pairing, Insertion,
    Completed, AlgorithmState)
from .machine import (insertion_order, initialize, apply_decision, item_count, progress, ranking,
    Comparator, drive, sort_items)
from .serialize import serialize, deserialize
from .session import SortSession, SessionStore
