"""
Serialization of merge-insertion states to and from JSON text

The layout is a flat JSON object with one key per field of the state, of which only the
ones relevant to the current ``phase`` carry anything, e.g. a state in the pairing phase::

    {"phase": "PAIRING", "mainChain": [], "recursionStack": [],
     "pairingPool": [{"id": "C"}, {"id": "D"}],
     "currentRoundWinners": [], "currentRoundLosers": [],
     "currentRoundPairings": {"dataType": "Map", "value": []},
     "oddTrack": {"id": "E"}, "insertionGroup": [], "currentInsertion": null,
     "currentPair": {"left": {"id": "A"}, "right": {"id": "B"}}}

Items are objects with their ``id`` plus their display fields. Maps from loser id to winner id
are tagged as ``{"dataType": "Map", "value": [[key, value], ...]}`` so that they can't be
confused with items or other objects.

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
from collections.abc import Mapping, Sequence
from typing import Any, Optional
from .errors import StateDecodeError
from .state import (AlgorithmState, BinarySearchCursor, ComparisonPair, Completed, Insertion,
    Item, Pairing, Phase, RoundRecord)

MAP_TAG = 'Map'

class _Map(dict):
    """A map that was read from its tagged representation."""

def _encode_map(mapping :Mapping[str, str]) -> dict[str, Any]:
    return { 'dataType': MAP_TAG, 'value': [ [k, v] for k, v in mapping.items() ] }

def _object_hook(obj :dict[str, Any]) -> Any:
    # items always carry an id, so an object with exactly these two keys is never an item
    if obj.keys() == {'dataType', 'value'} and obj['dataType'] == MAP_TAG:
        rv = _Map( (k, v) for k, v in obj['value'] )
        if len(rv) != len(obj['value']):
            raise StateDecodeError("duplicate key in map")
        return rv
    return obj

def _encode_item(item :Optional[Item]) -> Optional[dict[str, Any]]:
    return None if item is None else { **item.data, 'id': item.id }

def _encode_items(items :Sequence[Item]) -> list[dict[str, Any]]:
    return [ {**i.data, 'id': i.id} for i in items ]

def _encode_round(record :RoundRecord) -> dict[str, Any]:
    return { 'roundId': record.round_id, 'losers': _encode_items(record.losers), 'oddTrack': _encode_item(record.odd),
        'pairings': _encode_map(record.pairings), 'promotedWinners': _encode_items(record.winners) }

def serialize(state :AlgorithmState) -> str:
    """Turns a state into JSON text that :func:`deserialize` turns back into an equal state."""
    if not isinstance(state, (Pairing, Insertion, Completed)):
        raise TypeError(f"not a state: {state!r}")
    # Start with the fields of a state that has nothing going on and fill in the ones of this phase.
    obj :dict[str, Any] = { 'phase': state.phase.value, 'mainChain': [], 'recursionStack': [],
        'pairingPool': [], 'currentRoundWinners': [], 'currentRoundLosers': [],
        'currentRoundPairings': _encode_map({}), 'oddTrack': None,
        'insertionGroup': [], 'currentInsertion': None, 'currentPair': None }
    if isinstance(state, Pairing):
        obj.update( recursionStack=[ _encode_round(r) for r in state.stack ],
            pairingPool=_encode_items(state.pool), currentRoundWinners=_encode_items(state.winners),
            currentRoundLosers=_encode_items(state.losers), currentRoundPairings=_encode_map(state.pairings),
            oddTrack=_encode_item(state.odd) )
    elif isinstance(state, Insertion):
        target = _encode_item(state.cursor.target)
        obj.update( mainChain=_encode_items(state.main_chain), recursionStack=[ _encode_round(r) for r in state.stack ],
            insertionGroup=_encode_items(state.group), currentInsertion=target,
            binarySearch={ 'active': True, 'min': state.cursor.min, 'max': state.cursor.max, 'target': target } )
    else:
        obj.update( mainChain=_encode_items(state.main_chain) )
    if state.pair is not None:
        obj['currentPair'] = { 'left': _encode_item(state.pair.left), 'right': _encode_item(state.pair.right) }
    return json.dumps(obj)

def _decode_item(obj :Any) -> Item:
    if not isinstance(obj, dict) or isinstance(obj, _Map) or not isinstance(obj.get('id'), str):
        raise StateDecodeError(f"not an item: {obj!r}")
    return Item(obj['id'], { k: v for k, v in obj.items() if k!='id' })

def _decode_opt_item(obj :Any) -> Optional[Item]:
    return None if obj is None else _decode_item(obj)

def _decode_items(obj :Any) -> tuple[Item, ...]:
    if not isinstance(obj, list):
        raise StateDecodeError(f"not a list of items: {obj!r}")
    return tuple( _decode_item(i) for i in obj )

def _decode_map(obj :Any) -> dict[str, str]:
    if not isinstance(obj, _Map) or not all( isinstance(k, str) and isinstance(v, str) for k, v in obj.items() ):
        raise StateDecodeError(f"not a tagged map of ids: {obj!r}")
    return dict(obj)

def _decode_int(obj :Any) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool):
        raise StateDecodeError(f"not an integer: {obj!r}")
    return obj

def _decode_round(obj :Any) -> RoundRecord:
    return RoundRecord( round_id=_decode_int(obj['roundId']), losers=_decode_items(obj['losers']),
        odd=_decode_opt_item(obj['oddTrack']), pairings=_decode_map(obj['pairings']),
        winners=_decode_items(obj['promotedWinners']) )

def _decode_state(obj :Any) -> AlgorithmState:
    if not isinstance(obj, dict):
        raise StateDecodeError("state must be a JSON object")
    phase = Phase(obj['phase'])
    if phase is Phase.COMPLETED:
        return Completed(_decode_items(obj['mainChain']))
    stack = tuple( _decode_round(r) for r in obj['recursionStack'] )
    if phase is Phase.PAIRING:
        if obj.get('currentPair') is None:
            raise StateDecodeError("pairing state without a current pair")
        pair = ComparisonPair( _decode_item(obj['currentPair']['left']), _decode_item(obj['currentPair']['right']) )
        return Pairing( pair=pair, pool=_decode_items(obj['pairingPool']), winners=_decode_items(obj['currentRoundWinners']),
            losers=_decode_items(obj['currentRoundLosers']), pairings=_decode_map(obj['currentRoundPairings']),
            odd=_decode_opt_item(obj['oddTrack']), stack=stack )
    assert phase is Phase.INSERTION
    if obj.get('binarySearch') is None:
        raise StateDecodeError("insertion state without a binary search")
    search = obj['binarySearch']
    cursor = BinarySearchCursor( _decode_item(search['target']), _decode_int(search['min']), _decode_int(search['max']) )
    main_chain = _decode_items(obj['mainChain'])
    if not 0 <= cursor.min < cursor.max <= len(main_chain):
        raise StateDecodeError(f"binary search range [{cursor.min}, {cursor.max}) is outside the main chain of length {len(main_chain)}")
    return Insertion( main_chain=main_chain, cursor=cursor,
        group=_decode_items(obj['insertionGroup']), stack=stack )

def deserialize(text :str) -> AlgorithmState:
    """Turns JSON text produced by :func:`serialize` back into a state.

    :raises StateDecodeError: If the text is not a well-formed state.
    """
    try:
        return _decode_state(json.loads(text, object_hook=_object_hook))
    except StateDecodeError:
        raise
    except (ValueError, KeyError, TypeError, AttributeError, RecursionError) as ex:
        raise StateDecodeError(f"malformed state: {ex!r}") from ex
