"""
Command-line interface for sorting a list of items by asking the user

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
import sys
import json
import shelve
import logging
import argparse
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Optional
from .errors import DuplicateItemError, NothingToUndoError, StateDecodeError
from .session import SortSession, SessionStore
from .state import Item

logger = logging.getLogger(__name__)

def read_items(text :str) -> list[Item]:
    """Parses the items to sort: either a JSON list of ids or of objects with an ``id``,
    or otherwise one id per line (blank lines are ignored)."""
    if text.lstrip().startswith('['):
        rv :list[Item] = []
        for obj in json.loads(text):
            if isinstance(obj, dict):
                rv.append( Item(str(obj['id']), { k: v for k, v in obj.items() if k!='id' }) )
            else:
                rv.append( Item(str(obj)) )
        return rv
    return [ Item(line.strip()) for line in text.splitlines() if line.strip() ]

def label(item :Item) -> str:
    name = item.data.get('name')
    if name is None:
        return item.id
    artist = item.data.get('artist')
    return f"{name} - {artist}" if artist else str(name)

def interact(session :SortSession, store :SessionStore, ask :Optional[Callable[[str], str]] = None) -> bool:
    """Asks the user for decisions until the session is done, saving it after each one.

    :return: ``True`` if the session is done, ``False`` if the user quit early.
    """
    if ask is None:
        ask = input
    while not session.done:
        pair = session.pair
        assert pair is not None
        try:
            answer = ask(f"[{session.progress:4.0%}] Please choose 1) {label(pair.left)!r} or 2) {label(pair.right)!r}"
                " (u = undo, q = quit): ").strip().lower()
        except EOFError:
            return False
        if answer=='q':
            return False
        if answer=='u':
            try:
                session.undo()
            except NothingToUndoError:
                print("Nothing to undo.")
                continue
        elif answer in ('1', '2'):
            session.choose('left' if answer=='1' else 'right')
        else:
            continue
        store.save(session)
    return True

def main(argv :Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog='merge_insertion_session',
        description='Sort items by preference with as few questions as possible. Progress is saved after every answer.')
    parser.add_argument('items', metavar='ITEMS', nargs='?', type=Path,
        help="file with one item per line, or a JSON list; only needed to start a new session")
    parser.add_argument('-s', '--store', default='.merge_insertion_session', help="file to keep the session in (default: %(default)s)")
    parser.add_argument('-k', '--key', default='sort_session', help="name of the session within the store (default: %(default)s)")
    parser.add_argument('-r', '--restart', action='store_true', help="discard any stored session and start over")
    parser.add_argument('-v', '--verbose', action='count', default=0, help="more log output (repeat for debug output)")
    args = parser.parse_args(argv)
    logging.basicConfig( level=logging.DEBUG if args.verbose>1 else logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s' )

    with shelve.open(args.store) as shelf:
        store = SessionStore(shelf, args.key)
        session = None
        if args.restart:
            store.clear()
        else:
            try:
                session = store.load()
            except StateDecodeError as ex:
                parser.exit(1, f"{parser.prog}: error: {ex} (use --restart to discard it)\n")
        if session is None:
            if args.items is None:
                parser.error("there is no stored session, please specify ITEMS")
            try:
                session = SortSession.start(read_items(args.items.read_text(encoding='UTF-8')), source_id=str(args.items))
            except DuplicateItemError as ex:
                parser.error(f"{args.items}: {ex}")
            except (KeyError, ValueError) as ex:
                parser.error(f"{args.items}: could not read items: {ex!r}")
            logger.info("starting new session with %d items", len(session.items))
            store.save(session)
        if not interact(session, store):
            print(f"Progress saved after {session.decisions} answers, run again to continue.")
            return 0
        for i, item in enumerate(session.ranking(), start=1):
            print(f"{i:4d}. {label(item)}")
        store.clear()
    return 0

if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
