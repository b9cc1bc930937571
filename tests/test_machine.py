"""
Tests for the merge-insertion state machine

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
import random
import unittest
from math import ceil, log2
from itertools import islice, permutations
from collections.abc import Callable
from typing import Literal
import merge_insertion_session as uut
from merge_insertion_session import machine

async def _comp(ab :tuple[uut.Item, uut.Item]) -> Literal[0,1]:
    return 0 if ab[0].id < ab[1].id else 1

# Decides for the item that comes first in ``order``.
def _by_order(order :str) -> Callable[[uut.ComparisonPair], str]:
    rank = { c: i for i, c in enumerate(order) }
    return lambda pair: min(pair.ids, key=rank.__getitem__)

# Runs a whole sort, returning all the states in order, including the initial and the final one.
def _run(items, decide :Callable[[uut.ComparisonPair], str]) -> list[uut.AlgorithmState]:
    states = [ uut.initialize(items) ]
    while not isinstance(states[-1], uut.Completed):
        states.append( uut.apply_decision(states[-1], decide(states[-1].pair)) )
    return states

def _ids(items) -> list[str]:
    return [ i.id for i in items ]

# Upper bound of comparisons: each item loses at most once while pairing, and each binary
# search into a main chain of length m takes at most ceil(log2(m+1)) comparisons.
def _max_comparisons(n :int) -> int:
    return max(n-1, 0) + sum( ceil(log2(m+1)) for m in range(1, n) )

class TestInsertionOrder(unittest.TestCase):

    def test_jacobsthal(self):
        jacobsthal = machine._jacobsthal  # pyright: ignore[reportPrivateUsage]  # pylint: disable=protected-access
        # <https://oeis.org/A001045>
        exp = [ 0, 1, 1, 3, 5, 11, 21, 43, 85, 171, 341, 683, 1365, 2731, 5461, 10923, 21845, 43691,
            87381, 174763, 349525, 699051, 1398101, 2796203, 5592405, 11184811, 22369621, 44739243 ]
        self.assertEqual( exp, list( islice( jacobsthal(), len(exp) ) ) )

    def test_fixed_points(self):
        self.assertEqual( uut.insertion_order(0), [] )
        self.assertEqual( uut.insertion_order(1), [0] )
        self.assertEqual( uut.insertion_order(2), [0, 1] )
        self.assertEqual( uut.insertion_order(3), [0, 2, 1] )
        self.assertEqual( uut.insertion_order(4), [0, 2, 1, 3] )
        self.assertEqual( uut.insertion_order(5), [0, 2, 1, 4, 3] )
        self.assertEqual( uut.insertion_order(6), [0, 2, 1, 4, 3, 5] )
        self.assertEqual( uut.insertion_order(11), [0, 2, 1, 4, 3, 10, 9, 8, 7, 6, 5] )
        self.assertEqual( uut.insertion_order(13), [0, 2, 1, 4, 3, 10, 9, 8, 7, 6, 5, 12, 11] )

    def test_permutation(self):
        for n in range(300):
            self.assertEqual( sorted(uut.insertion_order(n)), list(range(n)) )
        with self.assertRaises(ValueError):
            uut.insertion_order(-1)

class TestStateMachine(unittest.TestCase):

    def test_initialize(self):
        self.assertEqual( uut.initialize([]), uut.Completed(()) )
        self.assertEqual( uut.initialize(['A']), uut.Completed((uut.Item('A'),)) )
        s = uut.initialize('ABCD')
        assert isinstance(s, uut.Pairing)
        self.assertEqual( s.phase, uut.Phase.PAIRING )
        self.assertEqual( s.pair.ids, ('A','B') )
        self.assertEqual( _ids(s.pool), ['C','D'] )
        self.assertIsNone( s.odd )
        self.assertEqual( s.stack, () )
        s = uut.initialize([ uut.Item('A', {'name': 'x'}), 'B', 'C', 'D', 'E' ])
        assert isinstance(s, uut.Pairing)
        self.assertEqual( s.pair.left.data, {'name': 'x'} )
        self.assertEqual( _ids(s.pool), ['C','D'] )
        self.assertEqual( s.odd, uut.Item('E') )
        s = uut.initialize('AB')
        assert isinstance(s, uut.Pairing)
        self.assertEqual( (s.pair.ids, s.pool, s.odd), (('A','B'), (), None) )
        with self.assertRaises(uut.DuplicateItemError):
            uut.initialize('ABB')
        with self.assertRaises(ValueError):
            uut.initialize([ uut.Item('A', {'name': 'x'}), uut.Item('A', {'name': 'y'}) ])

    def test_item_identity(self):
        self.assertEqual( uut.Item('A', {'name': 'x'}), uut.Item('A', {'name': 'y'}) )
        self.assertNotEqual( uut.Item('A'), uut.Item('B') )
        self.assertEqual( len({ uut.Item('A', {'name': 'x'}), uut.Item('A') }), 1 )

    def test_four_items(self):
        # preference: A > D > B > C
        s = uut.initialize('ABCD')
        s = uut.apply_decision(s, 'A')
        assert isinstance(s, uut.Pairing)
        self.assertEqual( s.pair.ids, ('C','D') )
        self.assertEqual( (_ids(s.winners), _ids(s.losers), dict(s.pairings)), (['A'], ['B'], {'B':'A'}) )
        s = uut.apply_decision(s, 'D')
        # first round closed, the winners are paired up in a new round
        assert isinstance(s, uut.Pairing)
        self.assertEqual( s.pair.ids, ('A','D') )
        self.assertEqual( (s.pool, s.winners, s.losers, dict(s.pairings)), ((), (), (), {}) )
        self.assertEqual( s.stack, ( uut.RoundRecord( round_id=0, losers=(uut.Item('B'), uut.Item('C')), odd=None,
            pairings={'B':'A', 'C':'D'}, winners=(uut.Item('A'), uut.Item('D')) ), ) )
        s = uut.apply_decision(s, 'A')
        # second round closed with one winner, so insertion starts with the inner round's loser
        assert isinstance(s, uut.Insertion)
        self.assertEqual( s.phase, uut.Phase.INSERTION )
        self.assertEqual( _ids(s.main_chain), ['A'] )
        self.assertEqual( len(s.stack), 1 )
        self.assertEqual( s.cursor, uut.BinarySearchCursor(uut.Item('D'), 0, 1) )
        self.assertEqual( s.pair.ids, ('D','A') )
        s = uut.apply_decision(s, 'A')
        # D is in the main chain, the outer round's losers B and C come next
        assert isinstance(s, uut.Insertion)
        self.assertEqual( _ids(s.main_chain), ['D','A'] )
        self.assertEqual( s.stack, () )
        self.assertEqual( s.cursor, uut.BinarySearchCursor(uut.Item('B'), 0, 2) )
        self.assertEqual( _ids(s.group), ['C'] )
        self.assertEqual( s.pair.ids, ('B','A') )
        s = uut.apply_decision(s, 'A')
        assert isinstance(s, uut.Insertion)
        self.assertEqual( (s.cursor.min, s.cursor.max), (0, 1) )
        self.assertEqual( s.pair.ids, ('B','D') )
        s = uut.apply_decision(s, 'D')
        assert isinstance(s, uut.Insertion)
        self.assertEqual( _ids(s.main_chain), ['B','D','A'] )
        self.assertEqual( s.group, () )
        self.assertEqual( s.pair.ids, ('C','D') )
        s = uut.apply_decision(s, 'D')
        assert isinstance(s, uut.Insertion)
        self.assertEqual( s.pair.ids, ('C','B') )
        s = uut.apply_decision(s, 'B')
        assert isinstance(s, uut.Completed)
        self.assertIsNone( s.pair )
        self.assertEqual( _ids(s.main_chain), ['C','B','D','A'] )
        self.assertEqual( _ids(uut.ranking(s)), ['A','D','B','C'] )

    def test_target_wins(self):
        # a target that wins moves toward the end of the main chain
        chain = tuple( uut.Item(c) for c in 'BA' )
        s = uut.Insertion( main_chain=chain, cursor=uut.BinarySearchCursor(uut.Item('X'), 0, 2) )
        self.assertEqual( s.pair.ids, ('X','A') )
        s2 = uut.apply_decision(s, 'X')
        assert isinstance(s2, uut.Completed)
        self.assertEqual( _ids(s2.main_chain), ['B','A','X'] )
        # a target that loses moves toward the start
        s = uut.Insertion( main_chain=chain[:1], cursor=uut.BinarySearchCursor(uut.Item('X'), 0, 1) )
        s2 = uut.apply_decision(s, 'B')
        assert isinstance(s2, uut.Completed)
        self.assertEqual( _ids(s2.main_chain), ['X','B'] )

    def test_five_items(self):
        states = _run('ABCDE', _by_order('ABCDE'))
        # the odd item E sits out the first round and is inserted along with that round's losers
        first = states[0]
        assert isinstance(first, uut.Pairing)
        self.assertEqual( first.odd, uut.Item('E') )
        rounds = [ s for s in states if isinstance(s, uut.Pairing) and len(s.stack)==1 ]
        self.assertEqual( rounds[0].stack[0].pending(), tuple( uut.Item(c) for c in 'BDE' ) )
        # after C was inserted, the first round's pending items B D E come in order [0, 2, 1]
        outer = [ s for s in states if isinstance(s, uut.Insertion) and not s.stack and len(s.main_chain)==2 ]
        self.assertEqual( outer[0].cursor.target, uut.Item('B') )
        self.assertEqual( _ids(outer[0].group), ['E','D'] )
        final = states[-1]
        assert isinstance(final, uut.Completed)
        self.assertEqual( _ids(uut.ranking(final)), list('ABCDE') )
        self.assertEqual( _ids(final.main_chain).count('E'), 1 )

    def test_permutations(self):
        for n in range(8):
            order = ''.join( chr(x+65) for x in range(n) )
            for perm in permutations(order):
                states = _run(perm, _by_order(order))
                self.assertLessEqual( len(states)-1, _max_comparisons(n) )
                final = states[-1]
                assert isinstance(final, uut.Completed)
                self.assertEqual( ''.join(_ids(uut.ranking(final))), order )

    def test_sorted_after_every_step(self):
        random.seed(42)
        for n in range(2, 40):
            order = [ f"i{x}" for x in range(n) ]
            rank = { c: i for i, c in enumerate(order) }
            items = order[:]
            random.shuffle(items)
            for s in _run(items, lambda pair: min(pair.ids, key=rank.__getitem__)):
                # a pairing round has no main chain yet
                chain = () if isinstance(s, uut.Pairing) else s.main_chain
                ranks = [ rank[i.id] for i in chain ]
                # least preferred first
                self.assertEqual( ranks, sorted(ranks, reverse=True) )
                self.assertEqual( uut.item_count(s), n )

    def test_arbitrary_decisions(self):
        # decisions need not be consistent, the sort must still terminate with each item exactly once
        random.seed(123)
        strategies :list[Callable[[uut.ComparisonPair], str]] = [
            lambda pair: pair.left.id,
            lambda pair: pair.right.id,
            lambda pair: random.choice(pair.ids) ]
        for n in range(60):
            items = [ f"item{x}" for x in range(n) ]
            for strategy in strategies:
                states = _run(items, strategy)
                self.assertLessEqual( len(states)-1, _max_comparisons(n) )
                final = states[-1]
                assert isinstance(final, uut.Completed)
                self.assertEqual( sorted(_ids(final.main_chain)), sorted(items) )
                self.assertEqual( len(uut.ranking(final)), n )

    def test_progress(self):
        states = _run('ABCDEFGHIJ', _by_order('ABCDEFGHIJ'))
        prog = [ uut.progress(s) for s in states ]
        self.assertEqual( prog[0], 0.0 )
        self.assertEqual( prog[-1], 1.0 )
        self.assertEqual( prog, sorted(prog) )
        self.assertTrue( all( 0.0 <= p <= 1.0 for p in prog ) )
        self.assertEqual( uut.progress(uut.initialize('')), 1.0 )

    def test_states_not_modified(self):
        states = _run('ABCDEFG', _by_order('GFEDCBA'))
        again = _run('ABCDEFG', _by_order('GFEDCBA'))
        self.assertEqual( states, again )
        for s in states[:-1]:
            self.assertIsNot( uut.apply_decision(s, s.pair.ids[0]), s )

    def test_unknown_decision(self):
        s = uut.initialize('ABC')
        before = uut.serialize(s)
        with self.assertRaises(uut.UnknownDecisionError) as cm:
            uut.apply_decision(s, 'C')
        self.assertEqual( cm.exception.winner_id, 'C' )
        self.assertEqual( cm.exception.ids, ('A','B') )
        self.assertEqual( uut.serialize(s), before )
        s = uut.apply_decision(s, 'A')
        assert isinstance(s, uut.Insertion)
        with self.assertRaises(uut.UnknownDecisionError):
            uut.apply_decision(s, 'X')
        self.assertIsInstance( uut.UnknownDecisionError('X', ('A','B')), uut.MergeInsertionError )

    def test_invalid_state(self):
        with self.assertRaises(uut.InvalidStateError):
            uut.apply_decision(uut.Pairing(pair=None), 'A')  # type: ignore[arg-type]
        with self.assertRaises(uut.InvalidStateError):
            uut.apply_decision(uut.Pairing(pair=uut.ComparisonPair(uut.Item('A'), uut.Item('B')), pool=(uut.Item('C'),)), 'A')
        chain = (uut.Item('A'),)
        with self.assertRaises(uut.InvalidStateError):
            uut.apply_decision(uut.Insertion(main_chain=chain, cursor=None), 'A')  # type: ignore[arg-type]
        with self.assertRaises(uut.InvalidStateError):
            uut.apply_decision(uut.Insertion(main_chain=chain, cursor=uut.BinarySearchCursor(uut.Item('B'), 1, 1)), 'A')
        with self.assertRaises(uut.InvalidStateError):
            uut.apply_decision(uut.Insertion(main_chain=chain, cursor=uut.BinarySearchCursor(uut.Item('B'), 0, 2)), 'A')
        with self.assertRaises(uut.InvalidStateError):
            uut.ranking(uut.initialize('AB'))

    def test_completed_is_noop(self):
        s = uut.initialize('A')
        self.assertIs( uut.apply_decision(s, 'A'), s )
        self.assertIs( uut.apply_decision(s, 'nonexistent'), s )

class TestDrive(unittest.IsolatedAsyncioTestCase):

    async def test_sort_items(self):
        self.assertEqual( _ids(await uut.sort_items('DABEC', _comp)), list('ABCDE') )
        self.assertEqual( await uut.sort_items([], _comp), [] )
        random.seed(99)
        for n in range(50):
            items = [ f"{x:03d}" for x in range(n) ]
            shuffled = items[:]
            random.shuffle(shuffled)
            self.assertEqual( _ids(await uut.sort_items(shuffled, _comp)), items )

    async def test_drive_resumes(self):
        s = uut.initialize('HGFEDCBA')
        for _ in range(6):
            s = uut.apply_decision(s, min(s.pair.ids))
        final = await uut.drive(uut.deserialize(uut.serialize(s)), _comp)
        self.assertEqual( _ids(uut.ranking(final)), list('ABCDEFGH') )

    async def test_bad_comparator(self):
        async def comp(_ab):
            return 2
        with self.assertRaises(ValueError):
            await uut.sort_items('AB', comp)
